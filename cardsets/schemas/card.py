"""
Pydantic schemas for Card endpoints.

A card's image is reported as a display object built at read time from the
stored filename and the active storage backend. The URL is null when no
backend is configured.
"""

from typing import Annotated

from pydantic import BaseModel, StringConstraints

CardName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
]


class CardCreateRequest(BaseModel):
    """Request body for POST /cards."""
    name: CardName


class ImageInfo(BaseModel):
    filename: str
    url: str | None = None


class ProcessedImageInfo(ImageInfo):
    """Image details returned right after an upload."""
    width: int
    height: int


class CardOut(BaseModel):
    id: int
    name: str
    image: ImageInfo | None = None


class CardWithImageOut(BaseModel):
    id: int
    name: str
    image: ProcessedImageInfo


class CardResponse(BaseModel):
    ok: bool = True
    card: CardOut


class CardImageResponse(BaseModel):
    ok: bool = True
    card: CardWithImageOut


class CardListResponse(BaseModel):
    ok: bool = True
    cards: list[CardOut]
