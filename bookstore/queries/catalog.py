"""
Catalog of the bookstore's reference queries.

Each builder returns a ready-to-run MongoQuery for the ``books`` collection.
Defaults reproduce the reference sheet; every value can be overridden.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from bookstore.queries.query_parser import (
    EXPLAIN_VERBOSITIES,
    MongoQuery,
    QuerySpecError,
    normalize_direction,
    page_bounds,
)

logger = logging.getLogger(__name__)

BOOKS_COLLECTION = "books"


# --- Basic reads and writes ---

def books_in_genre(genre: str = "Fiction", collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="books_in_genre", collection=collection, type="find", filter={"genre": genre}
    )


def books_published_since(year: int = 1960, collection: str = BOOKS_COLLECTION) -> MongoQuery:
    """Books published in ``year`` or later, expressed as a ``$match`` stage."""
    return MongoQuery(
        name="books_published_since",
        collection=collection,
        type="aggregate",
        pipeline=[{"$match": {"published_year": {"$gte": year}}}],
    )


def books_by_author(author: str = "George Orwell", collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="books_by_author", collection=collection, type="find", filter={"author": author}
    )


def update_price(
    title: str = "1984", price: float = 12.99, collection: str = BOOKS_COLLECTION
) -> MongoQuery:
    return MongoQuery(
        name="update_price",
        collection=collection,
        type="update_one",
        filter={"title": title},
        update={"$set": {"price": price}},
    )


def delete_by_title(title: str = "Brave New World", collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="delete_by_title", collection=collection, type="delete_one", filter={"title": title}
    )


# --- Advanced queries ---

def in_stock_after(year: int = 2010, collection: str = BOOKS_COLLECTION) -> MongoQuery:
    """Books in stock and published strictly after ``year``."""
    return MongoQuery(
        name="in_stock_after",
        collection=collection,
        type="find",
        filter={"in_stock": True, "published_year": {"$gt": year}},
    )


def title_author_price(collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="title_author_price",
        collection=collection,
        type="find",
        filter={},
        projection={"title": 1, "author": 1, "price": 1, "_id": 0},
    )


def books_by_price(direction: Any = 1, collection: str = BOOKS_COLLECTION) -> MongoQuery:
    """All books sorted by price; ``direction`` is 1/"asc" or -1/"desc"."""
    return MongoQuery(
        name="books_by_price",
        collection=collection,
        type="find",
        filter={},
        sort=[("price", normalize_direction(direction, "books_by_price"))],
    )


def books_page(page: int = 1, page_size: int = 5, collection: str = BOOKS_COLLECTION) -> MongoQuery:
    """
    One page of the collection, in natural order.

    Natural order is whatever the server returns; add a sort for pages that
    stay stable while the collection changes.
    """
    skip, limit = page_bounds(page, page_size)
    return MongoQuery(
        name=f"books_page_{page}",
        collection=collection,
        type="find",
        filter={},
        skip=skip,
        limit=limit,
    )


# --- Aggregation pipelines ---

def average_price_pipeline() -> List[Dict[str, Any]]:
    return [
        {"$group": {"_id": "$genre", "averagePrice": {"$avg": "$price"}}},
        {"$sort": {"averagePrice": 1}},
    ]


def top_authors_pipeline() -> List[Dict[str, Any]]:
    """
    Authors with the most books, every tied author included.

    A plain sort followed by ``$limit: 1`` keeps a single arbitrary author
    when several share the top count. Grouping the per-author counts by value
    first makes the top "row" the whole set of tied authors.
    """
    return [
        {"$group": {"_id": "$author", "bookCount": {"$sum": 1}}},
        {"$group": {"_id": "$bookCount", "authors": {"$push": "$_id"}}},
        {"$sort": {"_id": -1}},
        {"$limit": 1},
        {"$unwind": "$authors"},
        {"$project": {"_id": 0, "author": "$authors", "bookCount": "$_id"}},
        {"$sort": {"author": 1}},
    ]


def books_by_decade_pipeline() -> List[Dict[str, Any]]:
    """Bucket books by floor(published_year / 10) and report the decade (bucket * 10)."""
    return [
        {
            "$group": {
                "_id": {"$floor": {"$divide": ["$published_year", 10]}},
                "bookCount": {"$sum": 1},
            }
        },
        {"$project": {"decade": {"$multiply": ["$_id", 10]}, "bookCount": 1, "_id": 0}},
        {"$sort": {"decade": 1}},
    ]


def average_price_by_genre(collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="average_price_by_genre",
        collection=collection,
        type="aggregate",
        pipeline=average_price_pipeline(),
    )


def top_authors(collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="top_authors", collection=collection, type="aggregate", pipeline=top_authors_pipeline()
    )


def books_by_decade(collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="books_by_decade",
        collection=collection,
        type="aggregate",
        pipeline=books_by_decade_pipeline(),
    )


# --- Indexing ---

def title_index(collection: str = BOOKS_COLLECTION) -> MongoQuery:
    return MongoQuery(
        name="title_index", collection=collection, type="create_index", keys=[("title", 1)]
    )


def author_year_index(collection: str = BOOKS_COLLECTION) -> MongoQuery:
    """Compound index: author ascending, then published_year descending."""
    return MongoQuery(
        name="author_year_index",
        collection=collection,
        type="create_index",
        keys=[("author", 1), ("published_year", -1)],
    )


def explain_title_lookup(
    title: str = "1984", verbosity: str = "executionStats", collection: str = BOOKS_COLLECTION
) -> MongoQuery:
    if verbosity not in EXPLAIN_VERBOSITIES:
        raise QuerySpecError(f"Invalid verbosity '{verbosity}'")
    return MongoQuery(
        name="explain_title_lookup",
        collection=collection,
        type="explain",
        filter={"title": title},
        verbosity=verbosity,
    )


CATALOG: Dict[str, Callable[..., MongoQuery]] = {
    "books_in_genre": books_in_genre,
    "books_published_since": books_published_since,
    "books_by_author": books_by_author,
    "update_price": update_price,
    "delete_by_title": delete_by_title,
    "in_stock_after": in_stock_after,
    "title_author_price": title_author_price,
    "books_by_price": books_by_price,
    "books_page": books_page,
    "average_price_by_genre": average_price_by_genre,
    "top_authors": top_authors,
    "books_by_decade": books_by_decade,
    "title_index": title_index,
    "author_year_index": author_year_index,
    "explain_title_lookup": explain_title_lookup,
}

# Indexes built by the importer after seeding
REFERENCE_INDEXES = (title_index, author_year_index)


def build_catalog_query(name: str, **params: Any) -> MongoQuery:
    """
    Build the catalog query ``name`` with ``params`` overriding its defaults.

    Raises:
        QuerySpecError: If the name is unknown or a parameter is not accepted

    Example:
        >>> build_catalog_query("books_in_genre", genre="Dystopian").filter
        {'genre': 'Dystopian'}
    """
    if name not in CATALOG:
        raise QuerySpecError(
            f"Unknown catalog query '{name}'. Available: {', '.join(sorted(CATALOG))}"
        )
    try:
        query = CATALOG[name](**params)
    except TypeError as e:
        raise QuerySpecError(f"Invalid parameters for '{name}': {e}")
    logger.debug(f"Built catalog query '{name}' with params {params}")
    return query
