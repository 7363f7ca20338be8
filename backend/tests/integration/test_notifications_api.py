"""Notification bell and outbox tests"""
from datetime import datetime

import pytest

from printops.domain.enums import NotificationStatus
from printops.repositories.notification_repo import NotificationRepository
from printops.services.reminder_service import ReminderService
from .helpers import API, create_project, error_kind, advance

FIRE_AT = datetime(2030, 1, 1, 9, 0)


@pytest.fixture
def fire(db):
    def _fire():
        return ReminderService().evaluate_due_reminders(FIRE_AT)
    return _fire


def _team_reminder(client, auth, admin, recipients, channels=None):
    body = {
        "title": "Stand-up",
        "remind_at": "2030-01-01T09:00:00Z",
        "recipient_ids": recipients,
    }
    if channels is not None:
        body["channels"] = channels
    response = client.post(f"{API}/reminders", json=body, headers=auth(admin))
    assert response.status_code == 201, response.text
    return response.json()


class TestReminderNotifications:

    def test_fired_reminder_reaches_every_recipient(self, client, auth, admin, printer, fire):
        _team_reminder(client, auth, admin, [printer.user_id])
        fire()

        for actor in (admin, printer):
            listed = client.get(f"{API}/notifications", headers=auth(actor)).json()
            assert listed["unread_count"] == 1
            assert listed["items"][0]["category"] == "REMINDER"
            assert listed["items"][0]["title"] == "Reminder: Stand-up"

    def test_email_channel_queues_one_outbox_entry(self, client, auth, admin, printer, fire, db):
        reminder = _team_reminder(
            client, auth, admin, [printer.user_id], channels={"in_app": False, "email": True}
        )
        fire()

        entries = NotificationRepository().get_entries_for_reminder(reminder["reminder_id"])
        assert len(entries) == 1
        assert entries[0].recipient_ids == [admin.user_id, printer.user_id]
        assert entries[0].status == NotificationStatus.PENDING
        assert db["notification_outbox"].count_documents({}) == 1
        assert client.get(f"{API}/notifications", headers=auth(printer)).json()["items"] == []

    def test_mark_read(self, client, auth, admin, printer, fire):
        _team_reminder(client, auth, admin, [printer.user_id])
        fire()
        notification = client.get(f"{API}/notifications", headers=auth(printer)).json()["items"][0]

        # Another user's notification id is not found for the caller
        foreign = client.patch(f"{API}/notifications/{notification['notification_id']}/read", headers=auth(admin))
        assert foreign.status_code == 404
        assert error_kind(foreign) == "NotFound"

        read = client.patch(f"{API}/notifications/{notification['notification_id']}/read", headers=auth(printer))
        assert read.status_code == 200
        assert read.json()["is_read"] is True

        assert client.get(f"{API}/notifications/unread-count", headers=auth(printer)).json()["unread_count"] == 0
        unread = client.get(f"{API}/notifications", params={"unread_only": "true"}, headers=auth(printer)).json()
        assert unread["items"] == []


class TestStatusNotifications:

    def test_creator_is_told_when_someone_else_moves_the_project(self, client, auth, sales, admin):
        pid = create_project(client, auth(sales))["project_id"]
        advance(client, auth(sales), pid, ["Pending Scope Approval"])
        assert client.get(f"{API}/notifications", headers=auth(sales)).json()["items"] == []

        advance(client, auth(admin), pid, ["Scope Approval Completed"])
        items = client.get(f"{API}/notifications", headers=auth(sales)).json()["items"]
        assert len(items) == 1
        assert items[0]["category"] == "STATUS_CHANGE"
        assert items[0]["project_id"] == pid


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] in ("healthy", "degraded")
