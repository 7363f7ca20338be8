"""Shared request helpers for API tests"""
from typing import Dict, Iterable, List, Optional

from fastapi.testclient import TestClient

API = "/api/v1"

# Standard project from Order Confirmed to Pending Production (graphics skipped)
TO_PENDING_PRODUCTION = [
    "Pending Scope Approval",
    "Scope Approval Completed",
    "Pending Departmental Engagement",
    "Departmental Engagement Completed",
    "Pending Production",
]

TO_PENDING_MOCKUP = [
    "Pending Scope Approval",
    "Scope Approval Completed",
    "Pending Departmental Engagement",
    "Departmental Engagement Completed",
    "Pending Mockup",
]

# Quote project from Order Confirmed to Completed; no gated stages
QUOTE_TO_COMPLETED = [
    "Pending Scope Approval",
    "Scope Approval Completed",
    "Pending Departmental Engagement",
    "Departmental Engagement Completed",
    "Pending Quote Request",
    "Quote Request Completed",
    "Pending Send Response",
    "Response Sent",
    "Pending Feedback",
    "Feedback Completed",
    "Completed",
]


def create_project(
    client: TestClient,
    headers: Dict[str, str],
    project_type: str = "Standard",
    departments: Optional[List[str]] = None,
    **extra
) -> dict:
    body = {
        "project_name": "Trade show kit",
        "project_type": project_type,
        "departments": departments if departments is not None else [],
        **extra,
    }
    response = client.post(f"{API}/projects", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def advance(client: TestClient, headers: Dict[str, str], project_id: str, statuses: Iterable[str]) -> dict:
    project = None
    for status in statuses:
        response = client.patch(
            f"{API}/projects/{project_id}/status", json={"status": status}, headers=headers
        )
        assert response.status_code == 200, response.text
        project = response.json()
    return project


def finish_quote(client: TestClient, headers: Dict[str, str], project_id: str) -> dict:
    advance(client, headers, project_id, QUOTE_TO_COMPLETED)
    response = client.patch(f"{API}/projects/{project_id}/finish", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def error_kind(response) -> str:
    return response.json()["error"]["kind"]
