"""scripts/run_queries.py

Run every bookstore query and report against the configured database and
print the results, section by section.

Usage:
    python ./scripts/run_queries.py --genre Fantasy --author "J.K. Rowling"
    python ./scripts/run_queries.py --seed --update-price "The Great Gatsby" 15.99
"""
from __future__ import annotations

import argparse
import json
import logging

from bookstore import queries, reports
from bookstore.connect_db import get_books_collection, get_database
from bookstore.insert_books import SAMPLE_BOOKS, insert_books


def show(heading: str, value) -> None:
    print(f"\n=== {heading} ===")
    if isinstance(value, list):
        value = [v.model_dump() if hasattr(v, "model_dump") else v for v in value]
    print(json.dumps(value, indent=2, default=str, ensure_ascii=False))


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Run the bookstore queries and reports")
    parser.add_argument("--genre", default="Fantasy")
    parser.add_argument("--after-year", type=int, default=2000)
    parser.add_argument("--author", default="J.K. Rowling")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--explain-title", default="The Great Gatsby")
    parser.add_argument("--seed", action="store_true", help="Replace the collection with the sample books first")
    parser.add_argument(
        "--update-price",
        nargs=2,
        metavar=("TITLE", "PRICE"),
        help="Set the price of one book",
    )
    parser.add_argument("--delete-title", help="Delete one book by title")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    db = get_database()
    books = get_books_collection(db)

    if args.seed:
        count = insert_books(books, SAMPLE_BOOKS, replace=True)
        print(f"Seeded {count} books")

    show(f"BOOKS BY GENRE ({args.genre})", queries.find_books_by_genre(books, args.genre))
    show(f"BOOKS PUBLISHED AFTER {args.after_year}", queries.find_books_after_year(books, args.after_year))
    show(f"BOOKS BY {args.author.upper()}", queries.find_books_by_author(books, args.author))
    show("IN STOCK AND PUBLISHED AFTER 2010", queries.find_in_stock_after(books))
    show("BOOKS WITH PROJECTION (Title, Author, Price)", queries.find_books_with_projection(books))
    show("BOOKS BY PRICE (ascending)", queries.sort_books_by_price(books))
    show("BOOKS BY PRICE (descending)", queries.sort_books_by_price(books, descending=True))
    show("AVERAGE PRICE BY GENRE", reports.average_price_by_category(books))
    show("AUTHOR WITH MOST BOOKS", reports.top_author_by_count(books))
    show("BOOKS BY PUBLICATION DECADE", reports.items_by_decade(books))
    show(f"PAGINATION (Page {args.page})", queries.get_books_page(books, args.page))
    show("INDEX PERFORMANCE COMPARISON", queries.demonstrate_index_performance(books, args.explain_title))
    show("INDEXES", [queries.create_title_index(books), queries.create_author_year_index(books)])

    if args.update_price:
        title, price = args.update_price
        result = queries.update_book_price(books, title, float(price))
        show("UPDATING BOOK PRICE", {"matched": result.matched_count, "modified": result.modified_count})
    if args.delete_title:
        result = queries.delete_book_by_title(books, args.delete_title)
        show("DELETING A BOOK", {"deleted": result.deleted_count})

    db.client.close()


if __name__ == "__main__":
    main()
