import mongomock
import pytest

from bookstore.insert_books import SAMPLE_BOOKS


@pytest.fixture
def db():
    return mongomock.MongoClient()["plp_bookstore"]


@pytest.fixture
def books(db):
    return db["books"]


@pytest.fixture
def example_books(books):
    """The three-item catalog used throughout the report tests."""
    books.insert_many(
        [
            {"title": "A", "author": "Ann", "genre": "Fantasy", "published_year": 1997, "price": 20.0, "in_stock": True},
            {"title": "B", "author": "Ann", "genre": "Fantasy", "published_year": 2001, "price": 10.0, "in_stock": False},
            {"title": "C", "author": "Cal", "genre": "Sci-Fi", "published_year": 2012, "price": 30.0, "in_stock": True},
        ]
    )
    return books


@pytest.fixture
def sample_books(books):
    books.insert_many([dict(b) for b in SAMPLE_BOOKS])
    return books
