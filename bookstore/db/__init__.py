"""
bookstore.db

Importador del inventario de libros a MongoDB.
"""

from .import_books_mongo import insert_books, load_books, run_import

__all__ = [
    'insert_books',
    'load_books',
    'run_import',
]
