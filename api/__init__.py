"""HTTP API over the bookstore queries and reports."""
