"""
Database connection and helpers

The MongoDB database is configured from the environment (DATABASE_URL and
DATABASE_NAME). `db` is None when either is missing so the app can still boot
and report its status on /test.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import HTTPException
from pymongo import ASCENDING, GEOSPHERE, TEXT, MongoClient
from pymongo.database import Database

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db: Optional[Database] = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


def get_db() -> Database:
    """FastAPI dependency handing the configured database to repositories."""
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def ensure_indexes(database: Database) -> None:
    """Create the indexes the queries rely on. Safe to call repeatedly."""
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["store"].create_index([("name", TEXT), ("description", TEXT)])
    database["store"].create_index([("location", GEOSPHERE)])
    database["store"].create_index([("slug", ASCENDING)])
    database["review"].create_index([("store", ASCENDING)])
    logger.info("Indexes ensured on %s", database.name)
