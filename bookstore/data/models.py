"""
models.py

Typed Book entity. Records are validated once, when they enter the
collection through the importer; queries never re-validate them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

REQUIRED_FIELDS = ("title", "author", "genre", "published_year", "price", "in_stock")


class BookValidationError(ValueError):
    """Raised when a book record does not match the Book schema."""

    pass


@dataclass
class Book:
    """A single inventory record of the books collection."""

    title: str
    author: str
    genre: str
    published_year: int
    price: float
    in_stock: bool

    # Present in the seed data, not required by any query
    pages: Optional[int] = None
    publisher: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Book":
        """
        Build a Book from a raw mapping (JSON object or CSV row).

        Raises:
            BookValidationError: If a required field is missing or has the wrong type
        """
        missing = [name for name in REQUIRED_FIELDS if raw.get(name) is None]
        if missing:
            raise BookValidationError(
                f"Missing field(s) {', '.join(missing)} in record {raw.get('title', raw)!r}"
            )

        title = raw["title"]
        for name in ("title", "author", "genre"):
            if not isinstance(raw[name], str) or not raw[name].strip():
                raise BookValidationError(f"'{name}' must be a non-empty string in {title!r}")

        return cls(
            title=raw["title"],
            author=raw["author"],
            genre=raw["genre"],
            published_year=_as_int(raw["published_year"], "published_year", title),
            price=_as_float(raw["price"], "price", title),
            in_stock=_as_bool(raw["in_stock"], "in_stock", title),
            pages=_as_int(raw["pages"], "pages", title) if raw.get("pages") is not None else None,
            publisher=raw.get("publisher"),
        )

    def to_document(self) -> Dict[str, Any]:
        """Document ready for insertion; optional fields left unset are omitted."""
        return {key: value for key, value in asdict(self).items() if value is not None}


def _as_int(value: Any, name: str, title: str) -> int:
    # bool is a subclass of int
    if isinstance(value, bool):
        raise BookValidationError(f"'{name}' must be an integer in {title!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise BookValidationError(f"'{name}' must be an integer in {title!r}, got {value!r}")


def _as_float(value: Any, name: str, title: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BookValidationError(f"'{name}' must be a number in {title!r}, got {value!r}")
    return float(value)


def _as_bool(value: Any, name: str, title: str) -> bool:
    if isinstance(value, bool):
        return value
    # CSV readers hand booleans over as text
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise BookValidationError(f"'{name}' must be a boolean in {title!r}, got {value!r}")
