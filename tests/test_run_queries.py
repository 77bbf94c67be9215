"""Tests for scripts/run_queries.py, run end to end on a mongomock database."""
import re
from unittest.mock import patch

import pytest

import run_queries


@pytest.fixture
def run(db, capsys):
    indexes_seen_by_explain = []

    def fake_explain(collection, title):
        # mongomock has no explain(); record which indexes existed at the time
        indexes_seen_by_explain.append(sorted(collection.index_information()))
        return {"without_index": {}, "with_index": {}}

    def _run(*argv):
        with patch("run_queries.get_database", return_value=db), \
                patch("bookstore.queries.demonstrate_index_performance", side_effect=fake_explain):
            run_queries.main(list(argv))
        return capsys.readouterr().out, indexes_seen_by_explain

    return _run


def headings(out):
    return re.findall(r"^=== (.+) ===$", out, flags=re.MULTILINE)


def test_sections_in_order(run):
    out, _ = run("--seed")
    assert out.startswith("Seeded 13 books")
    assert headings(out) == [
        "BOOKS BY GENRE (Fantasy)",
        "BOOKS PUBLISHED AFTER 2000",
        "BOOKS BY J.K. ROWLING",
        "IN STOCK AND PUBLISHED AFTER 2010",
        "BOOKS WITH PROJECTION (Title, Author, Price)",
        "BOOKS BY PRICE (ascending)",
        "BOOKS BY PRICE (descending)",
        "AVERAGE PRICE BY GENRE",
        "AUTHOR WITH MOST BOOKS",
        "BOOKS BY PUBLICATION DECADE",
        "PAGINATION (Page 1)",
        "INDEX PERFORMANCE COMPARISON",
        "INDEXES",
    ]
    assert '"decade": 1990' in out
    assert "Harry Potter and the Philosopher's Stone" in out


def test_explain_runs_before_title_index_exists(run, db):
    _, seen = run("--seed")
    assert seen == [["_id_"]]
    assert "title_1" in db["books"].index_information()


def test_update_and_delete(run, db):
    out, _ = run("--seed", "--update-price", "The Great Gatsby", "15.99", "--delete-title", "1984")
    assert headings(out)[-2:] == ["UPDATING BOOK PRICE", "DELETING A BOOK"]
    books = db["books"]
    assert books.find_one({"title": "The Great Gatsby"})["price"] == 15.99
    assert books.find_one({"title": "1984"}) is None
