import logging
from enum import Enum
from typing import Optional

import jsonschema
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from bookstore import queries, reports
from bookstore.connect_db import get_books_collection, get_database
from bookstore.errors import InvalidInput, StoreUnavailable
from bookstore.schema import CatalogItem, bson_to_jsonschema, books_schema

logger = logging.getLogger(__name__)

app = FastAPI(title="Bookstore Queries API (Mongo)", version="1.0.0")


def db_conn():
    db = get_database()
    try:
        yield db
    finally:
        db.client.close()


def books_collection(db=Depends(db_conn)):
    return get_books_collection(db)


@app.exception_handler(InvalidInput)
def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailable)
def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


# ======== Schemas ========
class BookSort(str, Enum):
    TITLE = "title"
    PRICE = "price"
    PRICE_DESC = "-price"
    YEAR = "year"
    YEAR_DESC = "-year"


class BookOut(CatalogItem):
    id: str


class BookSummary(BaseModel):
    title: str
    author: str
    price: float


class PricePatch(BaseModel):
    price: float = Field(ge=0)


# ======== Utility helpers ========
_BOOKS_JSON_SCHEMA = bson_to_jsonschema(books_schema)


def _format_book(doc: dict) -> dict:
    d = dict(doc)
    d["id"] = str(d.pop("_id", ""))
    # mongosh stores numeric literals as doubles
    year = d.get("published_year")
    if isinstance(year, float) and year.is_integer():
        d["published_year"] = int(year)
    return d


def _validate_against_books_schema(doc: dict):
    try:
        jsonschema.validate(instance=doc, schema=_BOOKS_JSON_SCHEMA)
    except jsonschema.ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Schema validation error: {e.message}")


# ======== Books ========
@app.get("/books", response_model=list[BookOut], tags=["Books"])
def list_books(
    genre: Optional[str] = None,
    author: Optional[str] = None,
    published_after: Optional[int] = None,
    in_stock: Optional[bool] = None,
    sort: Optional[BookSort] = None,
    page: Optional[int] = Query(default=None, ge=1),
    per_page: int = Query(default=queries.BOOKS_PER_PAGE, ge=1, le=100),
    books=Depends(books_collection),
):
    rows = queries.find_books(
        books,
        genre=genre,
        author=author,
        published_after=published_after,
        in_stock=in_stock,
        sort=sort.value if sort else None,
        page=page,
        per_page=per_page,
    )
    out = []
    for r in rows:
        try:
            out.append(BookOut(**_format_book(r)))
        except ValidationError as e:
            logger.warning("Skipping malformed book %s: %s", r.get("_id"), e)
    return out


@app.get("/books/summary", response_model=list[BookSummary], tags=["Books"])
def list_book_summaries(books=Depends(books_collection)):
    return [BookSummary(**r) for r in queries.find_books_with_projection(books)]


@app.post("/books", response_model=BookOut, status_code=status.HTTP_201_CREATED, tags=["Books"])
def create_book(payload: CatalogItem, books=Depends(books_collection)):
    doc = payload.model_dump(exclude_none=True)
    _validate_against_books_schema(doc)
    saved = queries.insert_book(books, doc)
    if not saved:
        raise HTTPException(status_code=500, detail="Failed to create book")
    return BookOut(**_format_book(saved))


@app.patch("/books/{title}/price", response_model=dict, tags=["Books"])
def patch_book_price(title: str, payload: PricePatch, books=Depends(books_collection)):
    result = queries.update_book_price(books, title, payload.price)
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Book not found")
    return {"updated": result.modified_count}


@app.delete("/books/{title}", response_model=dict, tags=["Books"])
def delete_book(title: str, books=Depends(books_collection)):
    result = queries.delete_book_by_title(books, title)
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Book not found")
    return {"deleted": result.deleted_count}


# ======== Reports ========
@app.get("/reports/average-price-by-genre", response_model=list[reports.CategoryAveragePrice], tags=["Reports"])
def report_average_price(books=Depends(books_collection)):
    return reports.average_price_by_category(books)


@app.get("/reports/top-author", response_model=list[reports.AuthorCount], tags=["Reports"])
def report_top_author(books=Depends(books_collection)):
    return reports.top_author_by_count(books)


@app.get("/reports/books-by-decade", response_model=list[reports.DecadeBucket], tags=["Reports"])
def report_books_by_decade(books=Depends(books_collection)):
    return reports.items_by_decade(books)


# ======== Indexes ========
@app.post("/indexes", response_model=dict, tags=["Indexes"])
def create_indexes(books=Depends(books_collection)):
    return {
        "indexes": [
            queries.create_title_index(books),
            queries.create_author_year_index(books),
        ]
    }


@app.get("/health", response_model=dict, tags=["Health"])
def health(db=Depends(db_conn)):
    try:
        db.client.admin.command("ping")
        return {"status": "ok"}
    except Exception:
        raise HTTPException(status_code=500, detail="db ping failed")
