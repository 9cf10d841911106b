"""
Document store connection management.

The process entry point owns one DBManager: it is opened at startup, attached to the
application state and closed on shutdown. Request handlers receive the Database handle
through the `get_db` dependency instead of importing a module-level client.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from logger import logger
from config.config import settings
from gcp.secret import secret_mgr
from utils.exceptions import ServiceUnavailableError


class DBManager:
    """Owns the process-wide MongoClient"""

    def __init__(self, uri: Optional[str] = None, database_name: Optional[str] = None):
        self.uri = uri or secret_mgr.secret(settings.Secret.MONGODB_URI) or settings.Database.DEFAULT_URI
        self.database_name = database_name or settings.Database.NAME
        self.client: Optional[MongoClient] = None

    def connect(self) -> Database:
        if self.client is None:
            logger.info(f"[DB_MANAGER] Connecting to document store, database: {self.database_name}")
            self.client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=settings.Database.SERVER_SELECTION_TIMEOUT_MS,
            )
        return self.client[self.database_name]

    def get_database(self) -> Database:
        if self.client is None:
            raise ServiceUnavailableError("Database connection is not initialized", code='DB_UNAVAILABLE')
        return self.client[self.database_name]

    def close(self):
        if self.client is not None:
            logger.info("[DB_MANAGER] Closing document store connection")
            self.client.close()
            self.client = None

    def health_check(self) -> Dict[str, Any]:
        health_status = {"database": self.database_name, "status": "unknown"}
        try:
            self.get_database().command('ping')
            health_status["status"] = "healthy"
        except (PyMongoError, ServiceUnavailableError) as e:
            health_status["status"] = "unhealthy"
            health_status["message"] = str(e)
            logger.error(f"[DB_MANAGER] Health check failed: {e}")
        return health_status


def get_db(request: Request) -> Database:
    """FastAPI dependency yielding the shared Database handle"""
    db_manager: Optional[DBManager] = getattr(request.app.state, 'db_manager', None)
    if db_manager is None:
        raise ServiceUnavailableError("Database connection is not initialized", code='DB_UNAVAILABLE')
    return db_manager.get_database()
