"""
books_config.py

Script de configuración para el importador de libros a MongoDB.
Lee la configuración desde un archivo YAML y ejecuta la importación.

Uso:
    python -m bookstore.db.books_config --config config/bookstore_config.yaml

    # O con el script instalado:
    bookstore-import --config config/bookstore_config.yaml
"""

import argparse
import sys
from pathlib import Path

from bookstore.cli.queries import configure_logging
from bookstore.data.config import load_query_config
from bookstore.data.models import BookValidationError
from bookstore.db.import_books_mongo import run_import
from bookstore.queries.mongo_executor import MongoConnectionError


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Importador de libros a MongoDB',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos de uso:

  # Importar con configuración por defecto
  %(prog)s --config config/bookstore_config.yaml

  # Eliminar colección antes de importar (útil para rehacer la carga)
  %(prog)s --config config/bookstore_config.yaml --drop-collection

  # Importar desde un CSV concreto sin crear índices
  %(prog)s --config config/bookstore_config.yaml --books data/books.csv --no-indexes
"""
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config/bookstore_config.yaml',
        help='Ruta al archivo de configuración YAML (default: config/bookstore_config.yaml)'
    )

    parser.add_argument(
        '--books',
        type=str,
        default=None,
        help='Fichero JSON o CSV con los libros (sobrescribe seed.books_path)'
    )

    parser.add_argument(
        '--drop-collection',
        action='store_true',
        help='Eliminar la colección antes de importar'
    )

    parser.add_argument(
        '--no-indexes',
        action='store_true',
        help='No crear los índices de referencia (title, author+published_year)'
    )

    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Modo silencioso (sin mensajes detallados)'
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Función principal del script."""
    args = parse_args(argv)

    # Verificar que el archivo de configuración existe
    config_path = Path(args.config).expanduser().resolve()
    if not config_path.exists():
        print(f"Error: Archivo de configuración no encontrado: {config_path}")
        return 1

    try:
        config = load_query_config(config_path)
    except (OSError, TypeError, ValueError) as e:
        print(f"Error cargando configuración desde {config_path}: {e}")
        return 1

    configure_logging(config.logging.level, config.logging.log_file)

    # Sobrescribir opciones con argumentos de línea de comandos
    books_path = args.books or config.seed.books_path
    drop_collection = args.drop_collection or config.seed.drop_collection
    create_indexes = config.seed.create_indexes and not args.no_indexes

    try:
        run_import(
            books_path=books_path,
            mongo_uri=config.mongo.mongo_uri,
            database_name=config.mongo.database,
            collection_name=config.mongo.collection,
            drop_collection=drop_collection,
            create_indexes=create_indexes,
            verbose=not args.quiet,
        )
    except FileNotFoundError as e:
        print(f"\nError: {e}")
        return 1
    except BookValidationError as e:
        print(f"\nError de validación: {e}")
        return 1
    except MongoConnectionError as e:
        print(f"\nError de conexión: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
