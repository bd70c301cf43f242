# connect_db.py - MongoDB connection for the task service
import logging
import os

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.database import Database

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MONGO_URI = "mongodb://localhost:27017/taskdb"
DEFAULT_DB_NAME = "taskdb"

MONGO_URI = os.getenv("MONGO_URI", DEFAULT_MONGO_URI)
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))


def get_client(uri: str = MONGO_URI, timeout_ms: int = MONGO_TIMEOUT_MS) -> MongoClient:
    return MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)


def get_database(uri: str = MONGO_URI, timeout_ms: int = MONGO_TIMEOUT_MS) -> Database:
    """Open a client, ping the server and return the database named in the URI.

    Raises pymongo's errors when the server cannot be reached; the client is
    closed before the error propagates.
    """
    client = get_client(uri, timeout_ms)
    try:
        client.admin.command("ping")
    except Exception:
        client.close()
        raise

    db = client.get_default_database(default=DEFAULT_DB_NAME)
    logger.debug("Using MongoDB database %s", db.name)
    return db


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    database = get_database()
    logger.info("Connected to MongoDB database: %s", database.name)
    database.client.close()
