"""
Tests for reports.py - pipeline construction and execution of the three
catalog reports.

Pipelines are checked structurally, then executed against mongomock to check
the ordering and counting guarantees of each report.
"""
from unittest.mock import MagicMock

import pytest
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from pydantic import ValidationError
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from bookstore.errors import InvalidInput, StoreUnavailable
from bookstore.reports import (
    AggregationRequest,
    ReportBuilder,
    ReportName,
    average_price_by_category,
    decade_of,
    items_by_decade,
    run_report,
    top_author_by_count,
)


class TestDecadeOf:
    @pytest.mark.parametrize("year,decade", [(1997, 1990), (2000, 2000), (2009, 2000), (1813, 1810), (0, 0)])
    def test_buckets(self, year, decade):
        assert decade_of(year) == decade
        assert decade_of(year) % 10 == 0

    @pytest.mark.parametrize(
        "year,decade",
        [(Int64(1997), 1990), (1997.0, 1990), (Decimal128("2004"), 2000), (Decimal128("2004.00"), 2000)],
    )
    def test_whole_numbers_of_any_bson_type(self, year, decade):
        assert decade_of(year) == decade
        assert type(decade_of(year)) is int

    @pytest.mark.parametrize(
        "year", [None, "1997", 1997.5, float("nan"), Decimal128("1997.5"), True, -5, -1990.0, Int64(-10)]
    )
    def test_rejects_unusable_years(self, year):
        with pytest.raises(InvalidInput):
            decade_of(year)


class TestPipelines:
    def test_average_price_pipeline(self):
        req = ReportBuilder().average_price_by_category()
        assert req.report is ReportName.AVERAGE_PRICE_BY_CATEGORY
        assert req.pipeline == [
            {
                "$group": {
                    "_id": "$genre",
                    "average_price": {"$avg": "$price"},
                    "item_count": {"$sum": 1},
                }
            },
            {"$sort": {"average_price": -1}},
        ]
        assert req.checked_field is None

    def test_top_author_limits_to_one(self):
        req = ReportBuilder().top_author_by_count()
        assert [next(iter(s)) for s in req.pipeline] == ["$group", "$sort", "$limit"]
        assert req.pipeline[-1] == {"$limit": 1}

    def test_decade_pipeline_derives_decade_from_year(self):
        req = ReportBuilder().items_by_decade()
        project = req.pipeline[0]["$project"]
        assert project["decade"] == {"$subtract": ["$published_year", {"$mod": ["$published_year", 10]}]}
        assert req.pipeline[1]["$group"]["titles"] == {"$push": "$title"}
        assert req.pipeline[2] == {"$sort": {"_id": 1}}
        assert req.checked_field == "published_year"

    def test_custom_field_names(self):
        builder = ReportBuilder(category_field="category", year_field="year")
        assert builder.average_price_by_category().pipeline[0]["$group"]["_id"] == "$category"
        assert "$year" in builder.items_by_decade().pipeline[0]["$project"]["decade"]["$subtract"]

    def test_build_by_name(self):
        builder = ReportBuilder()
        assert builder.build("items_by_decade") == builder.items_by_decade()
        with pytest.raises(ValueError):
            builder.build("unknown")

    def test_building_is_repeatable(self):
        builder = ReportBuilder()
        assert builder.top_author_by_count() == builder.top_author_by_count()


class TestAggregationRequestValidation:
    def test_empty_pipeline_rejected(self):
        with pytest.raises(ValidationError):
            AggregationRequest(report=ReportName.TOP_AUTHOR_BY_COUNT, pipeline=[])

    def test_stage_needs_single_operator(self):
        with pytest.raises(ValidationError):
            AggregationRequest(
                report=ReportName.TOP_AUTHOR_BY_COUNT,
                pipeline=[{"$sort": {"x": 1}, "$limit": 1}],
            )

    def test_stage_key_must_be_operator(self):
        with pytest.raises(ValidationError):
            AggregationRequest(report=ReportName.TOP_AUTHOR_BY_COUNT, pipeline=[{"group": {}}])


class TestAveragePriceByCategory:
    def test_example(self, example_books):
        rows = average_price_by_category(example_books)
        assert [(r.category, r.average_price, r.item_count) for r in rows] == [
            ("Sci-Fi", 30.0, 1),
            ("Fantasy", 15.0, 2),
        ]

    def test_sorted_non_increasing(self, sample_books):
        prices = [r.average_price for r in average_price_by_category(sample_books)]
        assert prices == sorted(prices, reverse=True)

    def test_empty_collection(self, books):
        assert average_price_by_category(books) == []

    def test_does_not_modify_records(self, example_books):
        before = list(example_books.find())
        average_price_by_category(example_books)
        items_by_decade(example_books)
        top_author_by_count(example_books)
        assert list(example_books.find()) == before


class TestTopAuthorByCount:
    def test_single_highest(self, example_books):
        rows = top_author_by_count(example_books)
        assert len(rows) == 1
        assert rows[0].author == "Ann"
        assert rows[0].item_count == 2

    def test_count_is_maximum(self, sample_books):
        (top,) = top_author_by_count(sample_books)
        counts = {}
        for doc in sample_books.find():
            counts[doc["author"]] = counts.get(doc["author"], 0) + 1
        assert top.item_count == max(counts.values())
        # ties are not deterministic, only the winner's count is
        assert counts[top.author] == top.item_count

    def test_empty_collection(self, books):
        assert top_author_by_count(books) == []


class TestItemsByDecade:
    def test_example(self, example_books):
        rows = items_by_decade(example_books)
        assert [(r.decade, r.item_count, r.titles) for r in rows] == [
            (1990, 1, ["A"]),
            (2000, 1, ["B"]),
            (2010, 1, ["C"]),
        ]

    def test_titles_keep_scan_order(self, books):
        books.insert_many(
            [
                {"title": "Zeta", "author": "x", "genre": "g", "published_year": 1951, "price": 1.0, "in_stock": True},
                {"title": "Alpha", "author": "x", "genre": "g", "published_year": 1954, "price": 1.0, "in_stock": True},
            ]
        )
        (bucket,) = items_by_decade(books)
        assert bucket.decade == 1950
        assert bucket.titles == ["Zeta", "Alpha"]

    def test_sorted_and_counts_cover_collection(self, sample_books):
        rows = items_by_decade(sample_books)
        decades = [r.decade for r in rows]
        assert decades == sorted(decades)
        assert all(d % 10 == 0 for d in decades)
        assert sum(r.item_count for r in rows) == sample_books.count_documents({})

    def test_matches_decade_of(self, sample_books):
        expected = {}
        for doc in sample_books.find():
            d = decade_of(doc["published_year"])
            expected[d] = expected.get(d, 0) + 1
        assert {r.decade: r.item_count for r in items_by_decade(sample_books)} == expected

    def test_idempotent(self, sample_books):
        assert items_by_decade(sample_books) == items_by_decade(sample_books)

    def test_missing_year_is_invalid(self, example_books):
        example_books.insert_one({"title": "No Year", "author": "x", "genre": "g", "price": 1.0, "in_stock": True})
        with pytest.raises(InvalidInput, match="No Year"):
            items_by_decade(example_books)

    def test_string_year_is_invalid(self, example_books):
        example_books.insert_one(
            {"title": "Text Year", "author": "x", "genre": "g", "published_year": "1999", "price": 1.0, "in_stock": True}
        )
        with pytest.raises(InvalidInput):
            items_by_decade(example_books)

    @pytest.mark.parametrize("year", [-5, 1997.5])
    def test_negative_or_fractional_year_is_invalid(self, example_books, year):
        example_books.insert_one(
            {"title": "Odd Year", "author": "x", "genre": "g", "published_year": year, "price": 1.0, "in_stock": True}
        )
        with pytest.raises(InvalidInput, match="Odd Year"):
            items_by_decade(example_books)

    def test_int64_and_whole_double_years_are_bucketed(self, example_books):
        # mongosh writes plain numbers as doubles; NumberLong writes int64
        example_books.insert_many(
            [
                {"title": "D", "author": "x", "genre": "g", "published_year": Int64(1995), "price": 1.0, "in_stock": True},
                {"title": "E", "author": "x", "genre": "g", "published_year": 2015.0, "price": 1.0, "in_stock": True},
            ]
        )
        rows = items_by_decade(example_books)
        assert [(r.decade, r.item_count) for r in rows] == [(1990, 2), (2000, 1), (2010, 2)]
        assert rows[0].titles == ["A", "D"]

    def test_server_suspects_that_are_whole_numbers_pass(self):
        # a server matches int64 and doubles against {"$not": {"$type": "int"}}
        collection = MagicMock()
        collection.find.return_value = [
            {"_id": 1, "title": "Long", "published_year": Int64(1997)},
            {"_id": 2, "title": "Double", "published_year": 2003.0},
        ]
        collection.aggregate.return_value = [
            {"_id": 1990, "item_count": 1, "titles": ["Long"]},
            {"_id": 2000.0, "item_count": 1, "titles": ["Double"]},
        ]
        request = ReportBuilder().items_by_decade()
        rows = run_report(collection, request)
        assert [r.decade for r in rows] == [1990, 2000]
        collection.find.assert_called_once_with(request.suspect_filter, {"published_year": 1, "title": 1})

    def test_empty_collection(self, books):
        assert items_by_decade(books) == []


class TestRunReportErrors:
    def test_store_unavailable_is_chained(self):
        collection = MagicMock()
        collection.aggregate.side_effect = ServerSelectionTimeoutError("no servers")
        with pytest.raises(StoreUnavailable) as excinfo:
            run_report(collection, ReportBuilder().average_price_by_category())
        assert isinstance(excinfo.value.__cause__, ServerSelectionTimeoutError)

    def test_store_unavailable_during_precheck(self):
        collection = MagicMock()
        collection.find.side_effect = ServerSelectionTimeoutError("no servers")
        with pytest.raises(StoreUnavailable):
            run_report(collection, ReportBuilder().items_by_decade())
        collection.aggregate.assert_not_called()

    def test_server_type_error_on_decade_is_invalid_input(self):
        collection = MagicMock()
        collection.find.return_value = []
        collection.aggregate.side_effect = OperationFailure("$mod only supports numeric types")
        with pytest.raises(InvalidInput):
            run_report(collection, ReportBuilder().items_by_decade())

    def test_other_operation_failures_propagate(self):
        collection = MagicMock()
        collection.aggregate.side_effect = OperationFailure("not authorized")
        with pytest.raises(OperationFailure):
            run_report(collection, ReportBuilder().top_author_by_count())
