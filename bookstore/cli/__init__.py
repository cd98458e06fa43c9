"""
CLI module for bookstore.

Modules:
    queries: Ejecución de consultas sobre la colección de libros (bookstore-query)
"""

__all__ = ["queries"]
