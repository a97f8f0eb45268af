"""
Pydantic models for catalog documents.
Input models validate request bodies; response models shape what the API returns.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator


def _required_text(v: Optional[str], field_name: str) -> str:
    """Trim a text field and reject empty values."""
    if not isinstance(v, str) or not v.strip():
        raise ValueError(f'{field_name} must not be empty')
    return v.strip()


def _to_datetime(value: Optional[date]) -> Optional[datetime]:
    """BSON has no date type, so dates are stored as midnight datetimes."""
    if value is None:
        return None
    return datetime.combine(value, time.min)


class GenreData(BaseModel):
    """Genre create/update body."""
    name: str = Field(..., max_length=100, description="Genre name")

    @validator('name', pre=True)
    def validate_name(cls, v):
        """Genre name required."""
        return _required_text(v, 'Genre name')


class AuthorData(BaseModel):
    """Author create/update body."""
    first_name: str = Field(..., max_length=100, description="Author first name")
    family_name: str = Field(..., max_length=100, description="Author family name")
    date_of_birth: Optional[date] = Field(None, description="Date of birth")
    date_of_death: Optional[date] = Field(None, description="Date of death")

    @validator('first_name', 'family_name', pre=True)
    def validate_names(cls, v):
        """Author names are required."""
        return _required_text(v, 'Author name')

    @validator('date_of_death')
    def validate_lifespan(cls, v, values):
        """Date of death cannot precede date of birth."""
        born = values.get('date_of_birth')
        if v is not None and born is not None and v < born:
            raise ValueError('date_of_death must be after date_of_birth')
        return v

    def to_document(self) -> Dict[str, Any]:
        document = self.dict()
        document["date_of_birth"] = _to_datetime(self.date_of_birth)
        document["date_of_death"] = _to_datetime(self.date_of_death)
        return document


class BookData(BaseModel):
    """Book create body."""
    title: str = Field(..., description="Book title")
    summary: str = Field(..., description="Short summary of the book")
    isbn: str = Field(..., description="ISBN")
    author: str = Field(..., description="Author identifier")
    genre: List[str] = Field(default_factory=list, description="Genre identifiers")

    @validator('title', 'summary', 'isbn', pre=True)
    def validate_text(cls, v):
        """Title, summary and ISBN are required."""
        return _required_text(v, 'Book field')


class BookUpdate(BaseModel):
    """Book update body; only provided fields are overwritten."""
    title: Optional[str] = Field(None, description="Book title")
    summary: Optional[str] = Field(None, description="Short summary of the book")
    isbn: Optional[str] = Field(None, description="ISBN")
    author: Optional[str] = Field(None, description="Author identifier")
    genre: Optional[List[str]] = Field(None, description="Genre identifiers")

    @validator('title', 'summary', 'isbn', pre=True)
    def validate_text(cls, v):
        """Provided text fields cannot be blank."""
        if v is None:
            return v
        return _required_text(v, 'Book field')


class GenreResponse(BaseModel):
    """Genre as returned by the API."""
    id: str = Field(..., description="Genre identifier")
    name: str = Field(..., description="Genre name")


class AuthorResponse(BaseModel):
    """Author as returned by the API."""
    id: str = Field(..., description="Author identifier")
    first_name: str
    family_name: str
    name: str = Field(..., description="Display name, family name first")
    date_of_birth: Optional[str] = None
    date_of_death: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> 'AuthorResponse':
        return cls(
            id=document["id"],
            first_name=document["first_name"],
            family_name=document["family_name"],
            name=f'{document["family_name"]}, {document["first_name"]}',
            date_of_birth=_date_part(document.get("date_of_birth")),
            date_of_death=_date_part(document.get("date_of_death")),
        )


class BookSummary(BaseModel):
    """Book reference embedded in genre, author and review responses."""
    id: str
    title: str
    summary: str


class BookResponse(BaseModel):
    """Book as returned by the API."""
    id: str = Field(..., description="Book identifier")
    title: str
    summary: str
    isbn: str
    author: Optional[AuthorResponse] = Field(None, description="Book author")
    genre: List[GenreResponse] = Field(default_factory=list, description="Book genres")
    review_count: int = Field(0, description="Number of reviews")


class GenreDetail(BaseModel):
    """Genre with the books filed under it."""
    genre: GenreResponse
    genre_books: List[BookSummary]


class AuthorDetail(BaseModel):
    """Author with the books they wrote."""
    author: AuthorResponse
    author_books: List[BookSummary]


def _date_part(value: Optional[str]) -> Optional[str]:
    """Strip the time from a serialized midnight datetime."""
    if not value:
        return None
    return value.split("T", 1)[0]
