"""
import_books_mongo.py

Importador del inventario de libros a MongoDB.

Reads books from a JSON or CSV file, validates every record against the Book
model and inserts them into the books collection. Optionally drops the
collection first and builds the reference indexes afterwards.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from pymongo.collection import Collection

from bookstore.data.models import Book, BookValidationError
from bookstore.queries.catalog import REFERENCE_INDEXES
from bookstore.queries.mongo_executor import connect_mongo, create_index

logger = logging.getLogger(__name__)


def _read_json_records(path: Path) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    # Accept a bare list or {"books": [...]}
    if isinstance(raw, dict):
        raw = raw.get("books")
    if not isinstance(raw, list):
        raise BookValidationError(f"Expected a list of books in {path}")
    return raw


def _read_csv_records(path: Path) -> List[Dict[str, Any]]:
    df = pd.read_csv(path)
    # Empty cells become None instead of NaN
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def load_books(books_path: str | Path) -> List[Book]:
    """
    Load and validate books from a JSON or CSV file.

    Args:
        books_path: Path to a ``.json`` (list of objects) or ``.csv`` file

    Returns:
        List of validated Book objects

    Raises:
        FileNotFoundError: If the file does not exist
        BookValidationError: If the format is unsupported or any record is invalid
    """
    path = Path(books_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Books file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        records = _read_json_records(path)
    elif suffix == ".csv":
        records = _read_csv_records(path)
    else:
        raise BookValidationError(f"Unsupported books file format '{suffix}' ({path})")

    books = []
    for position, record in enumerate(records, 1):
        if not isinstance(record, dict):
            raise BookValidationError(f"Record #{position} in {path} is not an object")
        try:
            books.append(Book.from_dict(record))
        except BookValidationError as e:
            raise BookValidationError(f"Record #{position} in {path}: {e}") from e

    logger.info(f"Loaded {len(books)} books from {path}")
    return books


def insert_books(
    collection: Collection,
    books: List[Book],
    drop_collection: bool = False,
) -> int:
    """
    Insert validated books into ``collection``.

    Returns:
        Number of inserted documents
    """
    if drop_collection:
        logger.info(f"Dropping collection '{collection.name}'")
        collection.drop()

    if not books:
        return 0

    result = collection.insert_many([book.to_document() for book in books])
    return len(result.inserted_ids)


def create_reference_indexes(collection: Collection) -> List[str]:
    """Build the title index and the author/published_year compound index."""
    names = []
    for builder in REFERENCE_INDEXES:
        query = builder(collection=collection.name)
        names.append(create_index(collection, query.keys, name=query.index_name))
    return names


def run_import(
    books_path: str | Path,
    mongo_uri: str,
    database_name: str,
    collection_name: str,
    drop_collection: bool = False,
    create_indexes: bool = True,
    verbose: bool = True,
) -> int:
    """
    Función principal que orquesta la importación de libros.

    Args:
        books_path: JSON or CSV file with the books
        mongo_uri: URI de MongoDB
        database_name: Nombre de la base de datos
        collection_name: Nombre de la colección
        drop_collection: Si True, elimina la colección antes de insertar
        create_indexes: Si True, crea los índices de referencia tras insertar
        verbose: Si True, muestra información detallada

    Returns:
        Number of inserted books
    """
    if verbose:
        print("=" * 100)
        print("IMPORTADOR DE LIBROS A MONGODB")
        print("=" * 100)
        print(f"  Fichero:    {books_path}")
        print(f"  Destino:    {database_name}.{collection_name}")
        print("=" * 100)

    if verbose:
        print("\n[1/3] Cargando y validando libros...")
    books = load_books(books_path)
    if verbose:
        print(f"  ✓ {len(books)} libros válidos")

    with connect_mongo(mongo_uri) as client:
        collection = client[database_name][collection_name]

        if verbose:
            print("\n[2/3] Insertando en MongoDB...")
        inserted = insert_books(collection, books, drop_collection=drop_collection)
        if verbose:
            print(f"  ✓ Insertados {inserted} documentos")

        if create_indexes:
            if verbose:
                print("\n[3/3] Creando índices...")
            for index_name in create_reference_indexes(collection):
                if verbose:
                    print(f"  ✓ Índice {index_name}")
        elif verbose:
            print("\n[3/3] Creación de índices omitida")

    if verbose:
        print(f"\n{'=' * 100}")
        print("✓ PROCESO COMPLETADO EXITOSAMENTE")
        print(f"{'=' * 100}")

    logger.info(f"Imported {inserted} books into {database_name}.{collection_name}")
    return inserted
