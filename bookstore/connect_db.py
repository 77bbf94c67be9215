# connect_db.py - MongoDB handle built from environment variables
import logging
import os

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from .errors import store_call

load_dotenv()

logger = logging.getLogger(__name__)

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "plp_bookstore")
BOOKS_COLLECTION = os.getenv("BOOKS_COLLECTION", "books")
MONGO_TLS = os.getenv("MONGO_TLS", "false").strip().lower() in ("1", "true", "yes")


def get_client(uri: str | None = None, tls: bool | None = None) -> MongoClient:
    """Create a client and verify the server answers a ping.

    Raises ``StoreUnavailable`` when no server is selected within five seconds.
    """
    uri = uri or MONGO_URI
    tls = MONGO_TLS if tls is None else tls
    client = MongoClient(uri, serverSelectionTimeoutMS=5000, tls=tls)
    try:
        with store_call("ping"):
            client.admin.command("ping")
    except Exception:
        client.close()
        logger.error("Failed to connect to MongoDB at %s", uri)
        raise
    return client


def get_database(uri: str | None = None, db_name: str | None = None) -> Database:
    client = get_client(uri)
    db = client[db_name or DB_NAME]
    logger.info("Connected to MongoDB database: %s", db.name)
    return db


def get_books_collection(db: Database) -> Collection:
    return db[BOOKS_COLLECTION]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    get_database()
