"""Aggregation reports over the ``books`` collection.

``ReportBuilder`` only describes work: each method returns an
``AggregationRequest`` holding the ordered pipeline stages for one report.
``run_report`` sends a request to a collection and parses the rows into the
report's response model. Nothing here writes to the collection.

Reports
-------
average_price_by_category
    ``$group`` by genre (mean price, item count) then ``$sort`` by mean price
    descending.
top_author_by_count
    ``$group`` by author (item count), ``$sort`` by count descending,
    ``$limit`` 1. When several authors share the highest count, which one is
    returned depends on the server's sort and is not deterministic.
items_by_decade
    ``$project`` a ``decade`` field as ``year - (year mod 10)``, ``$group`` by
    decade (item count, titles in scan order), ``$sort`` by decade ascending.
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from bson.decimal128 import Decimal128
from pydantic import BaseModel, Field, field_validator
from pymongo.collection import Collection
from pymongo.errors import OperationFailure

from .errors import InvalidInput, store_call

logger = logging.getLogger(__name__)


class ReportName(str, Enum):
    AVERAGE_PRICE_BY_CATEGORY = "average_price_by_category"
    TOP_AUTHOR_BY_COUNT = "top_author_by_count"
    ITEMS_BY_DECADE = "items_by_decade"


class AggregationRequest(BaseModel):
    """A report pipeline ready to be sent to ``Collection.aggregate``.

    ``checked_field``, when set, names the document field the report derives
    its group key from. ``suspect_filter`` narrows down the documents whose
    value in that field needs a closer look; ``run_report`` checks each of
    them client-side and refuses to dispatch if any is unusable.
    """

    report: ReportName
    pipeline: List[Dict[str, Any]]
    checked_field: Optional[str] = None
    suspect_filter: Optional[Dict[str, Any]] = None

    @field_validator("pipeline")
    @classmethod
    def check_stages(cls, stages):
        if not stages:
            raise ValueError("pipeline must contain at least one stage")
        for i, stage in enumerate(stages):
            if len(stage) != 1:
                raise ValueError(f"stage {i} must have exactly one operator, got {sorted(stage)}")
            (op,) = stage
            if not op.startswith("$"):
                raise ValueError(f"stage {i} operator {op!r} does not start with '$'")
        return stages


# ======== Response rows ========
class CategoryAveragePrice(BaseModel):
    category: Optional[str] = None
    average_price: Optional[float] = None
    item_count: int = Field(ge=0)


class AuthorCount(BaseModel):
    author: Optional[str] = None
    item_count: int = Field(ge=0)


class DecadeBucket(BaseModel):
    decade: int
    item_count: int = Field(ge=0)
    titles: List[str] = Field(default_factory=list)


# the ``_id`` of each grouped row becomes this field of the response model
_ROW_TYPES: Dict[ReportName, tuple] = {
    ReportName.AVERAGE_PRICE_BY_CATEGORY: (CategoryAveragePrice, "category"),
    ReportName.TOP_AUTHOR_BY_COUNT: (AuthorCount, "author"),
    ReportName.ITEMS_BY_DECADE: (DecadeBucket, "decade"),
}


def _whole_year(year) -> int:
    if year is None:
        raise InvalidInput("published_year is missing")
    if isinstance(year, Decimal128):
        year = year.to_decimal()
    if isinstance(year, bool):
        raise InvalidInput(f"published_year must be an integer, got {year!r}")
    # Int64 subclasses int; mongosh stores plain numbers as doubles
    if isinstance(year, int):
        return int(year)
    if isinstance(year, float) and year.is_integer():
        return int(year)
    if isinstance(year, Decimal) and year.is_finite() and year == year.to_integral_value():
        return int(year)
    raise InvalidInput(f"published_year must be an integer, got {year!r}")


def decade_of(year) -> int:
    """Return the decade bucket of ``year``: ``year - year % 10``.

    Defined for non-negative whole numbers, whether stored as int32, int64,
    double or decimal; anything else raises ``InvalidInput``.
    """
    year = _whole_year(year)
    if year < 0:
        raise InvalidInput(f"published_year must be non-negative, got {year}")
    return year - (year % 10)


class ReportBuilder:
    """Builds the pipelines of the three catalog reports.

    Field names default to the ``books`` document layout and can be overridden
    for collections that store the same data under other keys.
    """

    def __init__(
        self,
        category_field: str = "genre",
        author_field: str = "author",
        year_field: str = "published_year",
        price_field: str = "price",
        title_field: str = "title",
    ):
        self.category_field = category_field
        self.author_field = author_field
        self.year_field = year_field
        self.price_field = price_field
        self.title_field = title_field

    def average_price_by_category(self) -> AggregationRequest:
        return AggregationRequest(
            report=ReportName.AVERAGE_PRICE_BY_CATEGORY,
            pipeline=[
                {
                    "$group": {
                        "_id": f"${self.category_field}",
                        "average_price": {"$avg": f"${self.price_field}"},
                        "item_count": {"$sum": 1},
                    }
                },
                {"$sort": {"average_price": -1}},
            ],
        )

    def top_author_by_count(self) -> AggregationRequest:
        return AggregationRequest(
            report=ReportName.TOP_AUTHOR_BY_COUNT,
            pipeline=[
                {"$group": {"_id": f"${self.author_field}", "item_count": {"$sum": 1}}},
                {"$sort": {"item_count": -1}},
                {"$limit": 1},
            ],
        )

    def items_by_decade(self) -> AggregationRequest:
        year = f"${self.year_field}"
        return AggregationRequest(
            report=ReportName.ITEMS_BY_DECADE,
            pipeline=[
                {
                    "$project": {
                        self.title_field: 1,
                        self.year_field: 1,
                        "decade": {"$subtract": [year, {"$mod": [year, 10]}]},
                    }
                },
                {
                    "$group": {
                        "_id": "$decade",
                        "item_count": {"$sum": 1},
                        "titles": {"$push": f"${self.title_field}"},
                    }
                },
                {"$sort": {"_id": 1}},
            ],
            checked_field=self.year_field,
            # int32 years are the common case and need no client-side look
            suspect_filter={
                "$or": [
                    {self.year_field: {"$not": {"$type": "int"}}},
                    {self.year_field: {"$lt": 0}},
                ]
            },
        )

    def build(self, report: ReportName) -> AggregationRequest:
        return {
            ReportName.AVERAGE_PRICE_BY_CATEGORY: self.average_price_by_category,
            ReportName.TOP_AUTHOR_BY_COUNT: self.top_author_by_count,
            ReportName.ITEMS_BY_DECADE: self.items_by_decade,
        }[ReportName(report)]()


def _parse_row(model: Type[BaseModel], id_field: str, row: dict) -> BaseModel:
    data = dict(row)
    data[id_field] = data.pop("_id", None)
    return model.model_validate(data)


def _check_field_values(collection: Collection, request: AggregationRequest, name: str) -> None:
    field = request.checked_field
    with store_call(f"{name} validation"):
        suspects = list(collection.find(request.suspect_filter or {}, {field: 1, "title": 1}))
    for doc in suspects:
        try:
            decade_of(doc.get(field))
        except InvalidInput as e:
            raise InvalidInput(f"{name}: record {doc.get('title', doc.get('_id'))!r}: {e}") from e


def run_report(collection: Collection, request: AggregationRequest) -> List[BaseModel]:
    """Execute ``request`` against ``collection`` and return typed rows.

    Raises ``InvalidInput`` when a document's ``checked_field`` cannot be
    bucketed and ``StoreUnavailable`` when MongoDB cannot be reached. An empty
    collection gives an empty list.
    """
    model, id_field = _ROW_TYPES[request.report]
    name = request.report.value

    if request.checked_field is not None:
        _check_field_values(collection, request, name)

    logger.debug("Running %s: %s", name, request.pipeline)
    try:
        with store_call(name):
            rows = list(collection.aggregate(request.pipeline))
    except OperationFailure as e:
        if request.checked_field is None:
            raise
        # a concurrent write slipped a bad value past the pre-check
        raise InvalidInput(f"{name} failed on stored data: {e}") from e

    logger.info("%s returned %d rows", name, len(rows))
    return [_parse_row(model, id_field, row) for row in rows]


_default_builder = ReportBuilder()


def average_price_by_category(collection: Collection) -> List[CategoryAveragePrice]:
    return run_report(collection, _default_builder.average_price_by_category())


def top_author_by_count(collection: Collection) -> List[AuthorCount]:
    """Zero rows for an empty collection, otherwise exactly one."""
    return run_report(collection, _default_builder.top_author_by_count())


def items_by_decade(collection: Collection) -> List[DecadeBucket]:
    return run_report(collection, _default_builder.items_by_decade())
