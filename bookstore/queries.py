"""Find/update/delete helpers and index management for ``books``.

Every function takes the collection as its first argument. Reads return
lists of plain dicts; writes return the driver's result object.
"""

import logging
from numbers import Real
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.results import DeleteResult, UpdateResult

from .errors import InvalidInput, store_call

logger = logging.getLogger(__name__)

BOOKS_PER_PAGE = 5
SUMMARY_PROJECTION = {"title": 1, "author": 1, "price": 1, "_id": 0}

# sort keys accepted by find_books, mapped to pymongo sort specs
SORTS = {
    "title": [("title", ASCENDING)],
    "price": [("price", ASCENDING)],
    "-price": [("price", DESCENDING)],
    "year": [("published_year", ASCENDING)],
    "-year": [("published_year", DESCENDING)],
}


def _find(collection: Collection, query: dict, projection=None, sort=None, skip=0, limit=0) -> List[dict]:
    with store_call("find"):
        cursor = collection.find(query, projection)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)


# ======== Basic queries ========
def find_books_by_genre(collection: Collection, genre: str) -> List[dict]:
    return _find(collection, {"genre": genre})


def find_books_after_year(collection: Collection, year: int) -> List[dict]:
    """Books published strictly after ``year``."""
    return _find(collection, {"published_year": {"$gt": year}})


def find_books_by_author(collection: Collection, author: str) -> List[dict]:
    return _find(collection, {"author": author})


def insert_book(collection: Collection, doc: dict) -> dict:
    """Insert one book and return it as stored, ``_id`` included."""
    with store_call("insert_one"):
        res = collection.insert_one(doc)
        saved = collection.find_one({"_id": res.inserted_id})
    logger.info("Inserted book %r", doc.get("title"))
    return saved


def update_book_price(collection: Collection, title: str, new_price: float) -> UpdateResult:
    if isinstance(new_price, bool) or not isinstance(new_price, Real):
        raise InvalidInput(f"price must be a number, got {new_price!r}")
    if new_price < 0:
        raise InvalidInput(f"price must be non-negative, got {new_price}")
    with store_call("update_one"):
        result = collection.update_one({"title": title}, {"$set": {"price": new_price}})
    logger.info("Price update for %r: matched=%d modified=%d", title, result.matched_count, result.modified_count)
    return result


def delete_book_by_title(collection: Collection, title: str) -> DeleteResult:
    with store_call("delete_one"):
        result = collection.delete_one({"title": title})
    logger.info("Deleted %d book(s) titled %r", result.deleted_count, title)
    return result


# ======== Advanced queries ========
def find_in_stock_after(collection: Collection, year: int = 2010) -> List[dict]:
    return _find(collection, {"in_stock": True, "published_year": {"$gt": year}})


def find_books_with_projection(collection: Collection) -> List[dict]:
    """Title, author and price of every book, without ``_id``."""
    return _find(collection, {}, SUMMARY_PROJECTION)


def sort_books_by_price(collection: Collection, descending: bool = False) -> List[dict]:
    return _find(collection, {}, sort=SORTS["-price" if descending else "price"])


def _page_bounds(page_number: int, per_page: int) -> int:
    if isinstance(page_number, bool) or not isinstance(page_number, int) or page_number < 1:
        raise InvalidInput(f"page_number must be an integer >= 1, got {page_number!r}")
    if isinstance(per_page, bool) or not isinstance(per_page, int) or per_page < 1:
        raise InvalidInput(f"per_page must be an integer >= 1, got {per_page!r}")
    return (page_number - 1) * per_page


def get_books_page(collection: Collection, page_number: int, per_page: int = BOOKS_PER_PAGE) -> List[dict]:
    """One page of books ordered by title. Pages start at 1."""
    skip = _page_bounds(page_number, per_page)
    return _find(collection, {}, sort=SORTS["title"], skip=skip, limit=per_page)


def find_books(
    collection: Collection,
    genre: Optional[str] = None,
    author: Optional[str] = None,
    published_after: Optional[int] = None,
    in_stock: Optional[bool] = None,
    sort: Optional[str] = None,
    page: Optional[int] = None,
    per_page: int = BOOKS_PER_PAGE,
) -> List[dict]:
    """Combine the basic filters; ``None`` leaves a filter out.

    ``page`` is optional here: without it every match is returned.
    """
    query: Dict[str, Any] = {}
    if genre:
        query["genre"] = genre
    if author:
        query["author"] = author
    if published_after is not None:
        query["published_year"] = {"$gt": published_after}
    if in_stock is not None:
        query["in_stock"] = in_stock

    if sort is not None and sort not in SORTS:
        raise InvalidInput(f"unknown sort {sort!r}; expected one of {sorted(SORTS)}")
    sort_spec = SORTS[sort] if sort else None

    skip, limit = 0, 0
    if page is not None:
        skip, limit = _page_bounds(page, per_page), per_page
        # stable page order even without an explicit sort
        sort_spec = sort_spec or SORTS["title"]
    return _find(collection, query, sort=sort_spec, skip=skip, limit=limit)


# ======== Indexing ========
def create_title_index(collection: Collection) -> str:
    with store_call("create_index"):
        name = collection.create_index([("title", ASCENDING)])
    logger.info("Index ready: %s", name)
    return name


def create_author_year_index(collection: Collection) -> str:
    with store_call("create_index"):
        name = collection.create_index([("author", ASCENDING), ("published_year", DESCENDING)])
    logger.info("Index ready: %s", name)
    return name


def _execution_stats(collection: Collection, title: str) -> dict:
    with store_call("explain"):
        plan = collection.find({"title": title}).explain()
    return plan.get("executionStats", {})


def demonstrate_index_performance(collection: Collection, title: str = "The Great Gatsby") -> dict:
    """Explain a title lookup before and after creating the title index.

    If the index already exists both runs use it.
    """
    without_index = _execution_stats(collection, title)
    create_title_index(collection)
    with_index = _execution_stats(collection, title)
    return {"without_index": without_index, "with_index": with_index}
