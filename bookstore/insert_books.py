# insert_books.py - validated seeding of the books collection
import logging
from typing import Iterable

from pydantic import ValidationError
from pymongo.collection import Collection

from .connect_db import get_books_collection, get_database
from .errors import InvalidInput, store_call
from .schema import CatalogItem

logger = logging.getLogger(__name__)

SAMPLE_BOOKS = [
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "genre": "Fiction",
     "published_year": 1960, "price": 12.99, "in_stock": True, "pages": 336, "publisher": "J. B. Lippincott & Co."},
    {"title": "1984", "author": "George Orwell", "genre": "Dystopian",
     "published_year": 1949, "price": 10.99, "in_stock": True, "pages": 328, "publisher": "Secker & Warburg"},
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "genre": "Fiction",
     "published_year": 1925, "price": 9.99, "in_stock": True, "pages": 180, "publisher": "Charles Scribner's Sons"},
    {"title": "Brave New World", "author": "Aldous Huxley", "genre": "Dystopian",
     "published_year": 1932, "price": 11.50, "in_stock": False, "pages": 311, "publisher": "Chatto & Windus"},
    {"title": "The Hobbit", "author": "J.R.R. Tolkien", "genre": "Fantasy",
     "published_year": 1937, "price": 14.99, "in_stock": True, "pages": 310, "publisher": "George Allen & Unwin"},
    {"title": "The Catcher in the Rye", "author": "J.D. Salinger", "genre": "Fiction",
     "published_year": 1951, "price": 8.99, "in_stock": True, "pages": 224, "publisher": "Little, Brown and Company"},
    {"title": "Pride and Prejudice", "author": "Jane Austen", "genre": "Romance",
     "published_year": 1813, "price": 7.99, "in_stock": True, "pages": 432, "publisher": "T. Egerton, Whitehall"},
    {"title": "The Lord of the Rings", "author": "J.R.R. Tolkien", "genre": "Fantasy",
     "published_year": 1954, "price": 19.99, "in_stock": True, "pages": 1178, "publisher": "Allen & Unwin"},
    {"title": "Animal Farm", "author": "George Orwell", "genre": "Political Satire",
     "published_year": 1945, "price": 8.50, "in_stock": False, "pages": 112, "publisher": "Secker & Warburg"},
    {"title": "The Alchemist", "author": "Paulo Coelho", "genre": "Fiction",
     "published_year": 1988, "price": 10.99, "in_stock": True, "pages": 197, "publisher": "HarperOne"},
    {"title": "Harry Potter and the Philosopher's Stone", "author": "J.K. Rowling", "genre": "Fantasy",
     "published_year": 1997, "price": 15.99, "in_stock": True, "pages": 223, "publisher": "Bloomsbury"},
    {"title": "The Night Circus", "author": "Erin Morgenstern", "genre": "Fantasy",
     "published_year": 2011, "price": 13.99, "in_stock": True, "pages": 387, "publisher": "Doubleday"},
    {"title": "The Martian", "author": "Andy Weir", "genre": "Science Fiction",
     "published_year": 2014, "price": 12.49, "in_stock": False, "pages": 369, "publisher": "Crown"},
]


def insert_books(collection: Collection, books: Iterable[dict], replace: bool = False) -> int:
    """Validate ``books`` and insert them; returns the inserted count.

    Every record is validated before anything is written. ``replace`` empties
    the collection first.
    """
    docs = []
    for i, raw in enumerate(books):
        try:
            docs.append(CatalogItem.model_validate(raw).model_dump(exclude_none=True))
        except ValidationError as e:
            title = raw.get("title") if isinstance(raw, dict) else None
            raise InvalidInput(f"book #{i} ({title!r}) is invalid: {e}") from e

    with store_call("insert_many"):
        if replace:
            removed = collection.delete_many({}).deleted_count
            logger.info("Removed %d existing books", removed)
        if not docs:
            return 0
        result = collection.insert_many(docs)
    logger.info("Inserted %d books into '%s'", len(result.inserted_ids), collection.name)
    return len(result.inserted_ids)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    books = get_books_collection(get_database())
    count = insert_books(books, SAMPLE_BOOKS, replace=True)
    print(f"Inserted {count} books")
