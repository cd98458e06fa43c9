"""
Parser for MongoDB query specification files.

This module provides functionality to parse query specifications from JSON files
and validate them before any of them reaches the database.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

QueryType = Literal[
    "find",
    "aggregate",
    "update_one",
    "update_many",
    "delete_one",
    "delete_many",
    "create_index",
    "explain",
]

QUERY_TYPES = (
    "find",
    "aggregate",
    "update_one",
    "update_many",
    "delete_one",
    "delete_many",
    "create_index",
    "explain",
)

EXPLAIN_VERBOSITIES = ("queryPlanner", "executionStats", "allPlansExecution")

_DIRECTIONS = {1: 1, -1: -1, "asc": 1, "desc": -1, "ascending": 1, "descending": -1}


@dataclass
class MongoQuery:
    """Represents a parsed MongoDB query specification."""

    name: str
    collection: str
    type: QueryType

    # For find / update / delete / explain queries
    filter: Optional[Dict[str, Any]] = None
    projection: Optional[Dict[str, Any]] = None
    sort: Optional[List[Tuple[str, int]]] = None
    skip: int = 0
    limit: int = 0

    # For update queries
    update: Optional[Dict[str, Any]] = None

    # For aggregate queries
    pipeline: Optional[List[Dict[str, Any]]] = None

    # For create_index queries
    keys: Optional[List[Tuple[str, int]]] = None
    index_name: Optional[str] = None

    # For explain queries
    verbosity: str = "executionStats"

    # Source file for logging
    source_file: Optional[str] = None


class QuerySpecError(Exception):
    """Raised when query specification is invalid."""

    pass


class QueryFileNotFoundError(FileNotFoundError):
    """Raised when query file doesn't exist."""

    pass


def normalize_direction(value: Any, where: str = "query") -> int:
    """
    Map a sort/index direction to pymongo's ASCENDING (1) or DESCENDING (-1).

    Accepts 1, -1, "asc", "desc", "ascending" and "descending".

    Raises:
        QuerySpecError: If the direction is not recognised
    """
    key = value.lower() if isinstance(value, str) else value
    # True == 1 in a dict lookup
    if isinstance(key, bool) or key not in _DIRECTIONS:
        raise QuerySpecError(f"Invalid direction {value!r} in {where}. Use 1, -1, 'asc' or 'desc'")
    return _DIRECTIONS[key]


def normalize_keys(spec: Any, where: str = "query") -> List[Tuple[str, int]]:
    """
    Turn a ``{field: direction}`` mapping into an ordered list of pairs.

    Field order is preserved, which matters for compound sorts and indexes.
    A list of ``[field, direction]`` pairs is accepted as well.
    """
    if isinstance(spec, dict):
        items = list(spec.items())
    elif isinstance(spec, list):
        items = []
        for item in spec:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise QuerySpecError(f"Expected [field, direction] pairs in {where}, got {item!r}")
            items.append((item[0], item[1]))
    else:
        raise QuerySpecError(f"Expected a field -> direction mapping in {where}, got {spec!r}")

    if not items:
        raise QuerySpecError(f"Empty field -> direction mapping in {where}")

    return [(str(field_name), normalize_direction(direction, where)) for field_name, direction in items]


def page_bounds(page: int, page_size: int) -> Tuple[int, int]:
    """
    Convert a 1-based page number into (skip, limit).

    Example:
        >>> page_bounds(3, 5)
        (10, 5)
    """
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise QuerySpecError(f"'page' must be an integer >= 1, got {page!r}")
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise QuerySpecError(f"'page_size' must be an integer >= 1, got {page_size!r}")
    return (page - 1) * page_size, page_size


def parse_queries_arg(raw: str) -> List[Path]:
    """
    Parse comma-separated query file paths.

    Args:
        raw: Comma-separated paths like "q1.json,q2.json,q3.json"

    Returns:
        List of validated Path objects

    Raises:
        QueryFileNotFoundError: If any file doesn't exist

    Example:
        >>> paths = parse_queries_arg("q1.json,q2.json")
        >>> len(paths)
        2
    """
    paths = []
    for part in raw.split(","):
        if not part.strip():
            continue
        path = Path(part.strip()).expanduser().resolve()
        if not path.exists():
            raise QueryFileNotFoundError(f"Query file not found: {path}")
        paths.append(path)
    return paths


def _require(spec: Dict[str, Any], key: str, where: str, kind: Any = dict) -> Any:
    if key not in spec:
        raise QuerySpecError(f"Missing '{key}' for {spec.get('type')} query in {where}")
    if not isinstance(spec[key], kind):
        kinds = kind if isinstance(kind, tuple) else (kind,)
        expected = " or ".join(k.__name__ for k in kinds)
        raise QuerySpecError(f"'{key}' must be a {expected} in {where}")
    return spec[key]


def _non_negative(spec: Dict[str, Any], key: str, where: str) -> int:
    value = spec.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QuerySpecError(f"'{key}' must be a non-negative integer in {where}")
    return value


def build_query(spec: Dict[str, Any], where: str = "<inline>") -> MongoQuery:
    """
    Validate a query specification mapping and build a MongoQuery.

    Expected JSON format:
    {
      "name": "query_identifier",
      "collection": "collection_name",
      "type": "find" | "aggregate" | "update_one" | "update_many" |
              "delete_one" | "delete_many" | "create_index" | "explain",
      "filter": {...},        // find, update_*, delete_*, explain
      "projection": {...},    // optional for find
      "sort": {...},          // optional for find
      "skip": 0, "limit": 0,  // optional for find
      "page": 1, "page_size": 5,  // optional for find, overrides skip/limit
      "update": {...},        // update_*
      "pipeline": [...],      // aggregate
      "keys": {...},          // create_index
      "index_name": "...",    // optional for create_index
      "verbosity": "..."      // optional for explain
    }

    Args:
        spec: Decoded JSON object
        where: Origin of the spec, used in error messages

    Returns:
        Parsed MongoQuery object

    Raises:
        QuerySpecError: If spec is invalid or malformed
    """
    if not isinstance(spec, dict):
        raise QuerySpecError(f"Query specification must be a JSON object in {where}")

    # Validate required fields
    for key in ("name", "collection", "type"):
        if key not in spec:
            raise QuerySpecError(f"Missing '{key}' field in {where}")

    query_type = spec["type"]
    if query_type not in QUERY_TYPES:
        raise QuerySpecError(
            f"Invalid type '{query_type}' in {where}. Must be one of: {', '.join(QUERY_TYPES)}"
        )

    query = MongoQuery(name=spec["name"], collection=spec["collection"], type=query_type)

    # Validate type-specific fields
    if query_type == "find":
        query.filter = _require(spec, "filter", where)
        if spec.get("projection") is not None:
            query.projection = _require(spec, "projection", where)
        if spec.get("sort") is not None:
            query.sort = normalize_keys(spec["sort"], f"'sort' of {where}")
        if "page" in spec:
            query.skip, query.limit = page_bounds(spec["page"], spec.get("page_size", 5))
        else:
            query.skip = _non_negative(spec, "skip", where)
            query.limit = _non_negative(spec, "limit", where)

    elif query_type == "aggregate":
        pipeline = _require(spec, "pipeline", where, list)
        if len(pipeline) == 0:
            raise QuerySpecError(f"'pipeline' must be non-empty list in {where}")
        if not all(isinstance(stage, dict) for stage in pipeline):
            raise QuerySpecError(f"Every pipeline stage must be an object in {where}")
        query.pipeline = pipeline

    elif query_type in ("update_one", "update_many"):
        query.filter = _require(spec, "filter", where)
        query.update = _require(spec, "update", where)
        if not query.update:
            raise QuerySpecError(f"'update' must not be empty in {where}")

    elif query_type in ("delete_one", "delete_many"):
        query.filter = _require(spec, "filter", where)

    elif query_type == "create_index":
        query.keys = normalize_keys(_require(spec, "keys", where, (dict, list)), f"'keys' of {where}")
        query.index_name = spec.get("index_name")

    else:  # explain
        query.filter = _require(spec, "filter", where)
        verbosity = spec.get("verbosity", "executionStats")
        if verbosity not in EXPLAIN_VERBOSITIES:
            raise QuerySpecError(
                f"Invalid verbosity '{verbosity}' in {where}. "
                f"Must be one of: {', '.join(EXPLAIN_VERBOSITIES)}"
            )
        query.verbosity = verbosity

    return query


def parse_query_spec(path: Path) -> MongoQuery:
    """
    Parse a single query specification file.

    Args:
        path: Path to query specification file

    Returns:
        Parsed MongoQuery object

    Raises:
        QuerySpecError: If spec is invalid or malformed

    Example:
        >>> from pathlib import Path
        >>> query = parse_query_spec(Path("queries/average_price_by_genre.json"))
        >>> query.name
        'average_price_by_genre'
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            spec = json.load(f)
    except json.JSONDecodeError as e:
        raise QuerySpecError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise QuerySpecError(f"Error reading {path}: {e}")

    query = build_query(spec, where=str(path))
    query.source_file = str(path)
    return query


def load_queries(paths: List[Path]) -> List[MongoQuery]:
    """
    Load and parse multiple query specification files.

    Args:
        paths: List of paths to query files

    Returns:
        List of parsed MongoQuery objects

    Raises:
        QuerySpecError: If any query spec is invalid
    """
    queries = []
    for path in paths:
        query = parse_query_spec(path)
        queries.append(query)
    return queries
