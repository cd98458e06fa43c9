"""
Tests for models.py - Book validation at ingestion.
"""

import pytest

from bookstore.data.models import Book, BookValidationError


@pytest.fixture
def raw_book():
    return {
        "title": "1984",
        "author": "George Orwell",
        "genre": "Dystopian",
        "published_year": 1949,
        "price": 10.99,
        "in_stock": True,
    }


class TestBookFromDict:
    def test_valid_record(self, raw_book):
        book = Book.from_dict(raw_book)

        assert book.title == "1984"
        assert book.published_year == 1949
        assert book.pages is None

    def test_document_omits_unset_optionals(self, raw_book):
        assert Book.from_dict(raw_book).to_document() == raw_book

    def test_optional_fields_kept(self, raw_book):
        raw_book.update(pages=328, publisher="Secker & Warburg")

        document = Book.from_dict(raw_book).to_document()

        assert document["pages"] == 328
        assert document["publisher"] == "Secker & Warburg"

    def test_integer_price_coerced(self, raw_book):
        raw_book["price"] = 12
        book = Book.from_dict(raw_book)
        assert book.price == 12.0
        assert isinstance(book.price, float)

    def test_whole_float_year_accepted(self, raw_book):
        raw_book["published_year"] = 1949.0
        assert Book.from_dict(raw_book).published_year == 1949

    def test_text_boolean_accepted(self, raw_book):
        raw_book["in_stock"] = "False"
        assert Book.from_dict(raw_book).in_stock is False

    @pytest.mark.parametrize("field", ["title", "author", "genre", "published_year", "price", "in_stock"])
    def test_missing_field(self, raw_book, field):
        del raw_book[field]
        with pytest.raises(BookValidationError, match=field):
            Book.from_dict(raw_book)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("title", ""),
            ("author", 42),
            ("published_year", True),
            ("published_year", "1949"),
            ("published_year", 1949.5),
            ("price", "cheap"),
            ("price", False),
            ("in_stock", 1),
            ("in_stock", "yes"),
        ],
    )
    def test_wrong_types(self, raw_book, field, value):
        raw_book[field] = value
        with pytest.raises(BookValidationError):
            Book.from_dict(raw_book)
