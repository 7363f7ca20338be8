"""MongoDB Client - Connection and Collection Management"""
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        # Test connection
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    # Projects collection
    projects = db["projects"]
    projects.create_index("project_id", unique=True)
    projects.create_index("order_id")
    projects.create_index(
        [("lineage_id", ASCENDING), ("version_number", ASCENDING)],
        unique=True
    )
    projects.create_index("status")
    projects.create_index("updated_at", background=True)

    # Project activity collection
    project_activity = db["project_activity"]
    project_activity.create_index("activity_id", unique=True)
    project_activity.create_index([("project_id", ASCENDING), ("created_at", DESCENDING)])

    # Reminders collection
    reminders = db["reminders"]
    reminders.create_index("reminder_id", unique=True)
    reminders.create_index([("status", ASCENDING), ("is_active", ASCENDING), ("next_trigger_at", ASCENDING)])
    reminders.create_index([("trigger_mode", ASCENDING), ("stage_matched_at", ASCENDING)])
    reminders.create_index("project_id")
    reminders.create_index("created_by")
    reminders.create_index("recipients")

    # In-app notifications collection
    inapp_notifications = db["inapp_notifications"]
    inapp_notifications.create_index("notification_id", unique=True)
    inapp_notifications.create_index([("recipient_id", ASCENDING), ("created_at", DESCENDING)])
    inapp_notifications.create_index([("recipient_id", ASCENDING), ("is_read", ASCENDING)])

    # Email outbox collection
    notification_outbox = db["notification_outbox"]
    notification_outbox.create_index("notification_id", unique=True)
    notification_outbox.create_index([("status", ASCENDING), ("created_at", ASCENDING)])

    logger.info("MongoDB indexes created successfully")


def to_document(model: BaseModel, key: str) -> Dict[str, Any]:
    """
    Dump a model for storage

    Enums are stored by value; datetimes stay native so Mongo can sort them.
    """
    doc = model.model_dump()
    doc = _enum_values(doc)
    doc["_id"] = doc[key]
    return doc


def _enum_values(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _enum_values(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_enum_values(v) for v in value]
    return value


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
