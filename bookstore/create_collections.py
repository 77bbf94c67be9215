import logging

from pymongo.database import Database
from pymongo.errors import CollectionInvalid

from .connect_db import BOOKS_COLLECTION, get_database
from .errors import store_call
from .queries import create_author_year_index, create_title_index
from .schema import books_schema

logger = logging.getLogger(__name__)


def create_collections(db: Database) -> list[str]:
    """Create ``books`` with its validator and indexes; returns index names.

    Safe to re-run: an existing collection gets the validator through collMod.
    """
    validator = {"$jsonSchema": books_schema}
    with store_call("create_collection"):
        try:
            db.create_collection(BOOKS_COLLECTION, validator=validator)
            logger.info("Created collection '%s' with validation.", BOOKS_COLLECTION)
        except CollectionInvalid:
            db.command("collMod", BOOKS_COLLECTION, validator=validator)
            logger.info("Updated validator on existing collection '%s'.", BOOKS_COLLECTION)

    books = db[BOOKS_COLLECTION]
    return [create_title_index(books), create_author_year_index(books)]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_collections(get_database())
