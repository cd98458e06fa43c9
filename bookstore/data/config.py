"""
config.py

Dataclasses for the bookstore query runner configuration and the loader that
builds them from a YAML file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class MongoConfig:
    """Configuración de conexión a MongoDB."""

    mongo_uri: str = "mongodb://localhost:27017/"
    database: str = "plp_bookstore"
    collection: str = "books"


@dataclass
class ExecutionConfig:
    """Limits applied to every query sent to the store."""

    timeout_s: int = 30
    page_size: int = 5


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class SeedConfig:
    """Options for the book importer (bookstore-import)."""

    books_path: str = "data/books.json"
    drop_collection: bool = False
    create_indexes: bool = True


@dataclass
class QueryAppConfig:
    """Configuración completa del runner de consultas."""

    mongo: MongoConfig = field(default_factory=MongoConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    seed: SeedConfig = field(default_factory=SeedConfig)


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Carga un fichero YAML y devuelve su contenido como diccionario."""
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def load_query_config(config_path: str | Path) -> QueryAppConfig:
    """
    Load the query runner configuration from a YAML file.

    Every section is optional; missing sections and keys fall back to the
    dataclass defaults. Unknown keys inside a section raise ``TypeError``.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Populated QueryAppConfig

    Raises:
        FileNotFoundError: If the file does not exist

    Example:
        >>> config = load_query_config("config/bookstore_config.yaml")
        >>> config.mongo.collection
        'books'
    """
    path = Path(config_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    raw: Dict[str, Any] = _load_yaml(path)

    mongo_cfg = MongoConfig(**(raw.get("mongo") or {}))
    execution_cfg = ExecutionConfig(**(raw.get("execution") or {}))
    logging_cfg = LoggingConfig(**(raw.get("logging") or {}))
    seed_cfg = SeedConfig(**(raw.get("seed") or {}))

    return QueryAppConfig(
        mongo=mongo_cfg,
        execution=execution_cfg,
        logging=logging_cfg,
        seed=seed_cfg,
    )
