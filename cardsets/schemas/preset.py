"""
Pydantic schemas for Set (preset) endpoints.

The owner of a preset is never part of a request body: it always comes from
the authenticated session.
"""

from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

from cardsets.schemas.card import CardOut

PositiveId = Annotated[int, Field(gt=0)]


class PresetCreateRequest(BaseModel):
    """Request body for POST /sets."""
    name: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
    ]


class CardRef(BaseModel):
    """One item of the PUT /sets/{id}/cards array body."""
    id: PositiveId


class SingleCardRequest(BaseModel):
    """Request body for PUT /sets/{id}/card."""
    card_id: PositiveId


class PresetSummary(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class PresetOut(PresetSummary):
    user_id: int


class PresetResponse(BaseModel):
    ok: bool = True
    set: PresetOut


class PresetListResponse(BaseModel):
    ok: bool = True
    sets: list[PresetSummary]


class BulkAssociationResponse(BaseModel):
    """Counts for a bulk association: processed = inserted + skipped."""
    ok: bool = True
    inserted: int
    skipped: int
    processed: int


class SingleAssociationResponse(BaseModel):
    ok: bool = True
    preset_id: int
    card_id: int
    created: bool


class PresetCardsResponse(BaseModel):
    ok: bool = True
    preset: PresetSummary
    cards: list[CardOut]


class MessageResponse(BaseModel):
    ok: bool = True
    message: str
