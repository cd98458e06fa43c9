"""
MongoDB query execution module.

This module runs every operation the bookstore exposes (find, pagination,
update, delete, aggregate, index creation and explain) against a MongoDB
collection. Driver errors raised by pymongo are not caught here: they reach
the caller unchanged.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from bookstore.queries.query_parser import MongoQuery, normalize_keys, page_bounds

logger = logging.getLogger(__name__)

KeySpec = Union[Dict[str, Any], Sequence[Tuple[str, Any]]]


class MongoConnectionError(Exception):
    """Raised when MongoDB connection fails."""

    pass


class QueryExecutionError(Exception):
    """Raised when a query cannot be dispatched."""

    pass


def _pairs(spec: Optional[KeySpec], where: str) -> Optional[List[Tuple[str, int]]]:
    if spec is None:
        return None
    return normalize_keys(spec if isinstance(spec, dict) else list(spec), where)


def build_update_document(assignments: Dict[str, Any]) -> Dict[str, Any]:
    """
    Wrap plain field assignments in ``$set``.

    A document made only of update operators (``$set``, ``$inc``...) is
    returned untouched.

    Example:
        >>> build_update_document({"price": 12.99})
        {'$set': {'price': 12.99}}
    """
    if assignments and all(key.startswith("$") for key in assignments):
        return assignments
    return {"$set": assignments}


def find_books(
    collection: Collection,
    filter: Optional[Dict[str, Any]] = None,
    projection: Optional[Dict[str, Any]] = None,
    sort: Optional[KeySpec] = None,
    skip: int = 0,
    limit: int = 0,
    timeout_ms: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Return every document matching ``filter``.

    Results have no guaranteed order unless ``sort`` is given; documents with
    equal sort keys keep whatever order the server returns.

    Args:
        collection: Target collection
        filter: Query predicate, ``{}`` matches everything
        projection: Field -> include/exclude flags
        sort: Field -> direction mapping (order preserved) or list of pairs
        skip: Number of documents to skip
        limit: Maximum number of documents, 0 for no limit
        timeout_ms: Server-side time limit

    Returns:
        List of result documents
    """
    cursor = collection.find(filter=filter or {}, projection=projection)

    sort_pairs = _pairs(sort, "sort")
    if sort_pairs:
        cursor = cursor.sort(sort_pairs)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    if timeout_ms:
        cursor = cursor.max_time_ms(timeout_ms)

    return list(cursor)


def paginate_books(
    collection: Collection,
    page: int,
    page_size: int = 5,
    filter: Optional[Dict[str, Any]] = None,
    projection: Optional[Dict[str, Any]] = None,
    sort: Optional[KeySpec] = None,
    timeout_ms: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Return page ``page`` (1-based) of ``page_size`` documents.

    Pages past the end of the result set are empty. Pagination is only
    stable across calls when ``sort`` fully orders the documents.

    Raises:
        QuerySpecError: If page or page_size is lower than 1
    """
    skip, limit = page_bounds(page, page_size)
    return find_books(
        collection,
        filter=filter,
        projection=projection,
        sort=sort,
        skip=skip,
        limit=limit,
        timeout_ms=timeout_ms,
    )


def update_books(
    collection: Collection,
    filter: Dict[str, Any],
    assignments: Dict[str, Any],
    many: bool = False,
) -> Dict[str, Any]:
    """
    Apply ``assignments`` to the first matching document, or to all of them.

    No match is a no-op, reported with ``matched_count == 0``.
    """
    update = build_update_document(assignments)
    if many:
        result = collection.update_many(filter, update)
    else:
        result = collection.update_one(filter, update)
    return {
        "operation": "update_many" if many else "update_one",
        "matched_count": result.matched_count,
        "modified_count": result.modified_count,
    }


def delete_books(
    collection: Collection,
    filter: Dict[str, Any],
    many: bool = False,
) -> Dict[str, Any]:
    """Remove the first matching document, or all of them."""
    if many:
        result = collection.delete_many(filter)
    else:
        result = collection.delete_one(filter)
    return {
        "operation": "delete_many" if many else "delete_one",
        "deleted_count": result.deleted_count,
    }


def aggregate_books(
    collection: Collection,
    pipeline: List[Dict[str, Any]],
    timeout_ms: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Run an aggregation pipeline and return its output documents."""
    if timeout_ms:
        cursor = collection.aggregate(pipeline, maxTimeMS=timeout_ms)
    else:
        cursor = collection.aggregate(pipeline)
    return list(cursor)


def create_index(
    collection: Collection,
    keys: KeySpec,
    name: Optional[str] = None,
) -> str:
    """
    Build an index on ``keys`` and return its name.

    Field order is kept, so ``{"author": 1, "published_year": -1}`` serves
    queries on ``author`` alone as well as on both fields.
    """
    pairs = _pairs(keys, "index keys")
    if name:
        return collection.create_index(pairs, name=name)
    return collection.create_index(pairs)


def explain_find(
    collection: Collection,
    filter: Optional[Dict[str, Any]] = None,
    verbosity: str = "executionStats",
) -> Dict[str, Any]:
    """
    Return the server's plan for ``find(filter)``.

    The explain command never executes writes, so calling this leaves the
    collection untouched.
    """
    command = {"find": collection.name, "filter": filter or {}}
    return collection.database.command("explain", command, verbosity=verbosity)


def run_mongo_query(
    query: MongoQuery,
    client: MongoClient,
    database_name: str,
    timeout_ms: int = 30000,
) -> List[Dict[str, Any]]:
    """
    Execute a single MongoDB query.

    Reads return their documents. Writes, index creation and explain return a
    single summary document so every query yields a list.

    Args:
        query: MongoQuery specification
        client: Active MongoClient instance
        database_name: Database name
        timeout_ms: Query timeout in milliseconds

    Returns:
        List of result documents

    Raises:
        QueryExecutionError: If the query type is not supported
        pymongo.errors.PyMongoError: Propagated from the driver

    Example:
        >>> from pymongo import MongoClient
        >>> client = MongoClient("mongodb://localhost:27017/")
        >>> query = MongoQuery(name="all", collection="books", type="find", filter={})
        >>> results = run_mongo_query(query, client, "plp_bookstore")
    """
    collection = client[database_name][query.collection]

    if query.type == "find":
        results = find_books(
            collection,
            filter=query.filter,
            projection=query.projection,
            sort=query.sort,
            skip=query.skip,
            limit=query.limit,
            timeout_ms=timeout_ms,
        )

    elif query.type == "aggregate":
        results = aggregate_books(collection, query.pipeline, timeout_ms=timeout_ms)

    elif query.type in ("update_one", "update_many"):
        results = [
            update_books(
                collection, query.filter, query.update, many=query.type == "update_many"
            )
        ]

    elif query.type in ("delete_one", "delete_many"):
        results = [delete_books(collection, query.filter, many=query.type == "delete_many")]

    elif query.type == "create_index":
        index_name = create_index(collection, query.keys, name=query.index_name)
        results = [{"operation": "create_index", "index_name": index_name}]

    elif query.type == "explain":
        results = [explain_find(collection, query.filter, verbosity=query.verbosity)]

    else:
        raise QueryExecutionError(f"Unsupported query type: {query.type}")

    logger.info(
        f"Query '{query.name}' on '{query.collection}': "
        f"{len(results)} documents returned"
    )
    return results


def _display_uri(mongo_uri: str) -> str:
    # Hide credentials
    return mongo_uri.split("@")[-1] if "@" in mongo_uri else mongo_uri


@contextmanager
def connect_mongo(mongo_uri: str, server_timeout_ms: int = 5000) -> Iterator[MongoClient]:
    """
    Open a client, check the server answers a ping and close it on exit.

    Raises:
        MongoConnectionError: If the server cannot be reached
    """
    with MongoClient(mongo_uri, serverSelectionTimeoutMS=server_timeout_ms) as client:
        try:
            client.admin.command("ping")
        except PyMongoError as e:
            raise MongoConnectionError(
                f"Failed to connect to MongoDB at {_display_uri(mongo_uri)}: {e}"
            ) from e
        logger.info(f"Connected to MongoDB at {_display_uri(mongo_uri)}")
        yield client


def run_mongo_queries(
    queries: List[MongoQuery],
    mongo_uri: str,
    database_name: str,
    timeout_s: int = 30,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Execute multiple MongoDB queries sequentially.

    Args:
        queries: List of MongoQuery specifications
        mongo_uri: MongoDB connection URI
        database_name: Database name
        timeout_s: Query timeout in seconds

    Returns:
        Dictionary mapping query name to result documents

    Raises:
        MongoConnectionError: If connection fails
        pymongo.errors.PyMongoError: If any query fails

    Example:
        >>> queries = [
        ...     MongoQuery(name="fiction", collection="books", type="find", filter={"genre": "Fiction"}),
        ...     MongoQuery(name="orwell", collection="books", type="find", filter={"author": "George Orwell"}),
        ... ]
        >>> results = run_mongo_queries(queries, "mongodb://localhost:27017/", "plp_bookstore")
        >>> "fiction" in results
        True
    """
    results = {}
    timeout_ms = timeout_s * 1000

    with connect_mongo(mongo_uri) as client:
        logger.info(f"Target database: {database_name}")

        # Execute each query
        for query in queries:
            logger.info(
                f"Executing query '{query.name}' "
                f"(type={query.type}, collection={query.collection})"
            )
            results[query.name] = run_mongo_query(
                query=query,
                client=client,
                database_name=database_name,
                timeout_ms=timeout_ms,
            )

    return results
