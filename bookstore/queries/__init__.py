"""
Módulo de ejecución de consultas MongoDB sobre la colección de libros.

Este módulo proporciona funcionalidad para:
- Parsear especificaciones de consultas desde ficheros JSON
- Construir las consultas de referencia del catálogo
- Ejecutar find, update, delete, aggregate, createIndex y explain contra MongoDB
"""

from bookstore.queries.query_parser import (
    MongoQuery,
    QuerySpecError,
    QueryFileNotFoundError,
    build_query,
    parse_queries_arg,
    parse_query_spec,
    load_queries,
)

from bookstore.queries.mongo_executor import (
    MongoConnectionError,
    QueryExecutionError,
    aggregate_books,
    connect_mongo,
    create_index,
    delete_books,
    explain_find,
    find_books,
    paginate_books,
    run_mongo_query,
    run_mongo_queries,
    update_books,
)

from bookstore.queries.catalog import CATALOG, build_catalog_query

__all__ = [
    # Query parsing
    "MongoQuery",
    "QuerySpecError",
    "QueryFileNotFoundError",
    "build_query",
    "parse_queries_arg",
    "parse_query_spec",
    "load_queries",
    # MongoDB execution
    "MongoConnectionError",
    "QueryExecutionError",
    "aggregate_books",
    "connect_mongo",
    "create_index",
    "delete_books",
    "explain_find",
    "find_books",
    "paginate_books",
    "run_mongo_query",
    "run_mongo_queries",
    "update_books",
    # Reference queries
    "CATALOG",
    "build_catalog_query",
]
