"""
MongoDB access helpers

One MongoClient is created per process when the app starts and its database
handle is kept on `app.state.db`. Routes receive it through the `get_db`
dependency, so tests can swap in any pymongo-compatible handle.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from loguru import logger
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings


def connect(settings: Settings) -> MongoClient:
    """Open the process-wide client and fail fast if the server is unreachable.

    Raising here aborts the app lifespan, so uvicorn stops before it starts
    serving requests.
    """
    client = MongoClient(settings.database_url, tz_aware=False)
    try:
        client.admin.command("ping")
    except PyMongoError:
        logger.exception("Could not reach MongoDB at startup")
        client.close()
        raise
    logger.info("Connected to {} database", settings.database_name)
    return client


def get_db(request: Request) -> Database:
    return request.app.state.db


def oid(id_str: str) -> Optional[ObjectId]:
    """Parse a path id, returning None when it is not a valid ObjectId."""
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def utcnow() -> datetime:
    # BSON dates keep milliseconds only
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def serialize_document(value: Any) -> Any:
    """Turn a Mongo document into JSON-friendly data.

    `_id` keys become `id` and every ObjectId becomes its hex string, at any
    nesting depth.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {
            ("id" if key == "_id" else key): serialize_document(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [serialize_document(item) for item in value]
    return value
