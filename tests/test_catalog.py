"""
Tests for catalog.py - the reference queries run against the seed inventory.
"""

from collections import defaultdict
from statistics import mean

import pytest

from bookstore.queries.catalog import (
    CATALOG,
    author_year_index,
    average_price_by_genre,
    books_by_decade,
    books_by_price,
    books_page,
    build_catalog_query,
    explain_title_lookup,
    top_authors,
)
from bookstore.queries.mongo_executor import run_mongo_query
from bookstore.queries.query_parser import QuerySpecError


def _run(query, client):
    return run_mongo_query(query, client, "plp_bookstore")


class TestBuildCatalogQuery:
    def test_every_entry_builds_with_defaults(self):
        for name in CATALOG:
            query = build_catalog_query(name)
            assert query.collection == "books"
            assert query.type in (
                "find", "aggregate", "update_one", "delete_one", "create_index", "explain"
            )

    def test_parameters_override_defaults(self):
        query = build_catalog_query("books_in_genre", genre="Dystopian")
        assert query.filter == {"genre": "Dystopian"}

    def test_collection_override(self):
        assert build_catalog_query("top_authors", collection="inventory").collection == "inventory"

    def test_unknown_name(self):
        with pytest.raises(QuerySpecError, match="Unknown catalog query"):
            build_catalog_query("most_expensive")

    def test_unknown_parameter(self):
        with pytest.raises(QuerySpecError, match="Invalid parameters"):
            build_catalog_query("books_in_genre", colour="red")

    def test_descending_price_sort(self):
        assert books_by_price("desc").sort == [("price", -1)]

    def test_page_bounds(self):
        query = books_page(page=3, page_size=5)
        assert (query.skip, query.limit) == (10, 5)

    def test_bad_page(self):
        with pytest.raises(QuerySpecError):
            books_page(page=0)

    def test_explain_verbosity_checked(self):
        with pytest.raises(QuerySpecError):
            explain_title_lookup(verbosity="verbose")


class TestReferenceReads:
    def test_books_in_genre(self, mongo_client, books_collection):
        results = _run(build_catalog_query("books_in_genre"), mongo_client)
        assert {doc["genre"] for doc in results} == {"Fiction"}
        assert len(results) == 4

    def test_books_published_since(self, mongo_client, books_collection, sample_books):
        results = _run(build_catalog_query("books_published_since", year=1950), mongo_client)

        expected = {b["title"] for b in sample_books if b["published_year"] >= 1950}
        assert {doc["title"] for doc in results} == expected

    def test_in_stock_after(self, mongo_client, books_collection):
        assert _run(build_catalog_query("in_stock_after"), mongo_client) == []

        results = _run(build_catalog_query("in_stock_after", year=1950), mongo_client)
        assert {doc["title"] for doc in results} == {
            "To Kill a Mockingbird", "The Catcher in the Rye", "The Lord of the Rings", "The Alchemist"
        }

    def test_title_author_price(self, mongo_client, books_collection):
        for doc in _run(build_catalog_query("title_author_price"), mongo_client):
            assert set(doc) == {"title", "author", "price"}

    def test_update_then_delete(self, mongo_client, books_collection):
        _run(build_catalog_query("update_price"), mongo_client)
        _run(build_catalog_query("delete_by_title"), mongo_client)

        assert books_collection.find_one({"title": "1984"})["price"] == 12.99
        assert books_collection.find_one({"title": "Brave New World"}) is None


class TestAveragePriceByGenre:
    def test_average_equals_arithmetic_mean(self, mongo_client, books_collection, sample_books):
        results = _run(average_price_by_genre(), mongo_client)

        prices = defaultdict(list)
        for book in sample_books:
            prices[book["genre"]].append(book["price"])

        assert {doc["_id"] for doc in results} == set(prices)
        for doc in results:
            assert doc["averagePrice"] == pytest.approx(mean(prices[doc["_id"]]))

    def test_sorted_ascending(self, mongo_client, books_collection):
        averages = [doc["averagePrice"] for doc in _run(average_price_by_genre(), mongo_client)]
        assert averages == sorted(averages)


class TestTopAuthors:
    def test_all_tied_authors_returned(self, mongo_client, books_collection):
        # Orwell and Tolkien both have two books in the seed inventory
        results = _run(top_authors(), mongo_client)

        assert {doc["author"] for doc in results} == {"George Orwell", "J.R.R. Tolkien"}
        assert {doc["bookCount"] for doc in results} == {2}

    def test_three_way_counts_with_tie(self, mongo_client, books_collection):
        books_collection.insert_many([
            {"title": "Homage to Catalonia", "author": "George Orwell", "genre": "Memoir",
             "published_year": 1938, "price": 9.5, "in_stock": True},
            {"title": "The Silmarillion", "author": "J.R.R. Tolkien", "genre": "Fantasy",
             "published_year": 1977, "price": 15.0, "in_stock": True},
        ])

        results = _run(top_authors(), mongo_client)

        assert sorted(doc["author"] for doc in results) == ["George Orwell", "J.R.R. Tolkien"]
        assert all(doc["bookCount"] == 3 for doc in results)

    def test_single_winner(self, mongo_client, books_collection):
        books_collection.insert_one(
            {"title": "Burmese Days", "author": "George Orwell", "genre": "Fiction",
             "published_year": 1934, "price": 10.0, "in_stock": True}
        )

        assert _run(top_authors(), mongo_client) == [{"author": "George Orwell", "bookCount": 3}]

    def test_empty_collection(self, mongo_client):
        assert _run(top_authors(), mongo_client) == []


class TestBooksByDecade:
    def test_decades_are_multiples_of_ten(self, mongo_client, books_collection):
        results = _run(books_by_decade(), mongo_client)

        assert results
        for doc in results:
            assert doc["decade"] % 10 == 0
            assert set(doc) == {"decade", "bookCount"}

    def test_counts_and_order(self, mongo_client, books_collection, sample_books):
        results = _run(books_by_decade(), mongo_client)

        expected = defaultdict(int)
        for book in sample_books:
            expected[book["published_year"] // 10 * 10] += 1

        assert [doc["decade"] for doc in results] == sorted(expected)
        assert {doc["decade"]: doc["bookCount"] for doc in results} == dict(expected)

    def test_1975_reported_as_1970s(self, mongo_client):
        collection = mongo_client["plp_bookstore"]["books"]
        collection.insert_one(
            {"title": "Shōgun", "author": "James Clavell", "genre": "Historical Fiction",
             "published_year": 1975, "price": 13.0, "in_stock": True}
        )

        assert _run(books_by_decade(), mongo_client) == [{"decade": 1970, "bookCount": 1}]


class TestReferenceIndexes:
    def test_compound_index(self, mongo_client, books_collection):
        results = _run(author_year_index(), mongo_client)

        assert results == [{"operation": "create_index", "index_name": "author_1_published_year_-1"}]
