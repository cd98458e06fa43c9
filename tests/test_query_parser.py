"""
Tests for query_parser.py - query specification files.
"""

import json

import pytest

from bookstore.queries.query_parser import (
    QueryFileNotFoundError,
    QuerySpecError,
    build_query,
    load_queries,
    normalize_keys,
    page_bounds,
    parse_queries_arg,
    parse_query_spec,
)

from .conftest import QUERIES_DIR


def _write(tmp_path, name, spec):
    path = tmp_path / name
    path.write_text(json.dumps(spec), encoding="utf-8")
    return path


class TestShippedQueries:
    def test_all_shipped_specs_parse(self):
        paths = sorted(QUERIES_DIR.glob("*.json"))
        assert paths

        queries = load_queries(paths)

        assert [q.name for q in queries] == [p.stem for p in paths]
        assert all(q.source_file for q in queries)

    def test_page_spec(self):
        query = parse_query_spec(QUERIES_DIR / "books_page_2.json")

        assert query.sort == [("price", 1), ("title", 1)]
        assert (query.skip, query.limit) == (5, 5)


class TestBuildQuery:
    def test_find_defaults(self):
        query = build_query({"name": "all", "collection": "books", "type": "find", "filter": {}})

        assert query.filter == {}
        assert query.projection is None
        assert query.sort is None
        assert (query.skip, query.limit) == (0, 0)

    def test_update(self):
        query = build_query({
            "name": "u", "collection": "books", "type": "update_many",
            "filter": {"genre": "Fiction"}, "update": {"in_stock": False},
        })

        assert query.type == "update_many"
        assert query.update == {"in_stock": False}

    def test_compound_index_keeps_order(self):
        query = build_query({
            "name": "i", "collection": "books", "type": "create_index",
            "keys": {"author": 1, "published_year": -1}, "index_name": "author_year",
        })

        assert query.keys == [("author", 1), ("published_year", -1)]
        assert query.index_name == "author_year"

    def test_explain_default_verbosity(self):
        query = build_query({"name": "e", "collection": "books", "type": "explain", "filter": {}})
        assert query.verbosity == "executionStats"

    @pytest.mark.parametrize(
        "spec, message",
        [
            ({"collection": "books", "type": "find", "filter": {}}, "Missing 'name'"),
            ({"name": "q", "type": "find", "filter": {}}, "Missing 'collection'"),
            ({"name": "q", "collection": "books", "type": "mapReduce"}, "Invalid type"),
            ({"name": "q", "collection": "books", "type": "find"}, "Missing 'filter'"),
            ({"name": "q", "collection": "books", "type": "find", "filter": []}, "must be a dict"),
            ({"name": "q", "collection": "books", "type": "aggregate", "pipeline": []}, "non-empty"),
            ({"name": "q", "collection": "books", "type": "aggregate", "pipeline": ["$match"]}, "stage"),
            ({"name": "q", "collection": "books", "type": "update_one", "filter": {}}, "Missing 'update'"),
            ({"name": "q", "collection": "books", "type": "update_one", "filter": {}, "update": {}}, "empty"),
            ({"name": "q", "collection": "books", "type": "create_index", "keys": {}}, "Empty"),
            ({"name": "q", "collection": "books", "type": "find", "filter": {}, "skip": -1}, "skip"),
            ({"name": "q", "collection": "books", "type": "find", "filter": {}, "page": 0}, "page"),
            ({"name": "q", "collection": "books", "type": "find", "filter": {}, "sort": {"price": 2}}, "direction"),
            ({"name": "q", "collection": "books", "type": "explain", "filter": {}, "verbosity": "all"}, "verbosity"),
        ],
    )
    def test_invalid_specs(self, spec, message):
        with pytest.raises(QuerySpecError, match=message):
            build_query(spec)


class TestHelpers:
    def test_normalize_keys_accepts_pairs(self):
        assert normalize_keys([["title", "asc"], ["price", "desc"]]) == [("title", 1), ("price", -1)]

    def test_boolean_direction_rejected(self):
        with pytest.raises(QuerySpecError):
            normalize_keys({"price": True})

    def test_page_bounds(self):
        assert page_bounds(1, 5) == (0, 5)
        assert page_bounds(3, 5) == (10, 5)


class TestFiles:
    def test_parse_queries_arg(self, tmp_path):
        first = _write(tmp_path, "a.json", {})
        second = _write(tmp_path, "b.json", {})

        assert parse_queries_arg(f"{first}, {second}") == [first.resolve(), second.resolve()]

    def test_missing_file(self, tmp_path):
        with pytest.raises(QueryFileNotFoundError):
            parse_queries_arg(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(QuerySpecError, match="Invalid JSON"):
            parse_query_spec(path)

    def test_source_file_recorded(self, tmp_path):
        path = _write(tmp_path, "q.json", {
            "name": "q", "collection": "books", "type": "delete_one", "filter": {"title": "x"}
        })

        assert parse_query_spec(path).source_file == str(path)
