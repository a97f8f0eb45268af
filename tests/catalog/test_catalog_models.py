"""
Tests for catalog models.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from catalog.models import AuthorData, AuthorResponse, BookData, BookUpdate, GenreData


class TestGenreData:
    def test_name_is_trimmed(self):
        assert GenreData(name="  Poetry ").name == "Poetry"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_empty_name_rejected(self, name):
        with pytest.raises(ValidationError):
            GenreData(name=name)


class TestAuthorData:
    def test_dates_become_midnight_datetimes(self):
        author = AuthorData(
            first_name="Octavia",
            family_name="Butler",
            date_of_birth="1947-06-22",
            date_of_death="2006-02-24"
        )

        document = author.to_document()

        assert document["date_of_birth"] == datetime(1947, 6, 22)
        assert document["date_of_death"] == datetime(2006, 2, 24)

    def test_death_before_birth_rejected(self):
        with pytest.raises(ValidationError):
            AuthorData(
                first_name="Octavia",
                family_name="Butler",
                date_of_birth=date(1947, 6, 22),
                date_of_death=date(1940, 1, 1)
            )

    def test_dates_are_optional(self):
        document = AuthorData(first_name="Anonymous", family_name="Scribe").to_document()

        assert document["date_of_birth"] is None


def test_author_display_name():
    author = AuthorResponse.from_document({
        "id": "abc",
        "first_name": "Octavia",
        "family_name": "Butler",
        "date_of_birth": "1947-06-22T00:00:00",
    })

    assert author.name == "Butler, Octavia"
    assert author.date_of_birth == "1947-06-22"
    assert author.date_of_death is None


def test_book_requires_title():
    with pytest.raises(ValidationError):
        BookData(title=" ", summary="s", isbn="1", author="a")


def test_book_update_keeps_unset_fields_out():
    update = BookUpdate(summary="New summary")

    assert update.dict(exclude_none=True) == {"summary": "New summary"}


def test_book_update_rejects_blank_title():
    with pytest.raises(ValidationError):
        BookUpdate(title="")
