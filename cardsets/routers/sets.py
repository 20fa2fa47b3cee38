"""
Sets router - user-owned presets of cards.

Endpoints:
  POST   /sets                             - Create a set owned by the caller
  GET    /sets                             - List the caller's sets
  DELETE /sets/{preset_id}                 - Delete a set and its associations
  PUT    /sets/{preset_id}/cards           - Add many cards: [{"id": 1}, ...]
  PUT    /sets/{preset_id}/card            - Add one card: {"card_id": 1}
  GET    /sets/{preset_id}/cards           - List the cards in a set
  DELETE /sets/{preset_id}/cards/{card_id} - Remove a card from a set

All endpoints require an authenticated session and only ever see sets owned
by the session's user. Someone else's set is a 404, same as a missing one.
"""

from fastapi import APIRouter, Body, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardsets.database import get_db
from cardsets.dependencies import SessionUser, require_user
from cardsets.schemas.card import CardOut
from cardsets.schemas.preset import (
    BulkAssociationResponse,
    CardRef,
    MessageResponse,
    PresetCardsResponse,
    PresetCreateRequest,
    PresetListResponse,
    PresetOut,
    PresetResponse,
    PresetSummary,
    SingleAssociationResponse,
    SingleCardRequest,
)
from cardsets.services import preset_service
from cardsets.storage import ImageStorage, get_storage, resolve_image

router = APIRouter()


@router.post(
    "",
    response_model=PresetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a set",
)
async def create_set(
    request: PresetCreateRequest,
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a set. The owner is always the authenticated user."""
    preset = await preset_service.create_preset(db, user.id, request.name)
    return PresetResponse(set=PresetOut.model_validate(preset))


@router.get("", response_model=PresetListResponse, summary="List my sets")
async def list_sets(
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    presets = await preset_service.list_presets(db, user.id)
    return PresetListResponse(sets=[PresetSummary.model_validate(p) for p in presets])


@router.delete("/{preset_id}", response_model=MessageResponse, summary="Delete a set")
async def delete_set(
    preset_id: int = Path(gt=0),
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await preset_service.delete_preset(db, preset_id, user.id)
    return MessageResponse(message="preset_removed")


@router.put(
    "/{preset_id}/cards",
    response_model=BulkAssociationResponse,
    summary="Add cards to a set",
)
async def add_cards(
    preset_id: int = Path(gt=0),
    items: list[CardRef] = Body(...),
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Add several cards to a set in one request.

    - Body: a non-empty JSON array of `{"id": <card id>}`
    - Duplicate ids in the body are counted once
    - If any card doesn't exist, nothing is added (404 with `missing`)
    - Cards already in the set are reported as `skipped`, not errors
    """
    inserted, skipped, processed = await preset_service.add_cards(
        db, preset_id, user.id, [item.id for item in items]
    )
    return BulkAssociationResponse(inserted=inserted, skipped=skipped, processed=processed)


@router.put(
    "/{preset_id}/card",
    response_model=SingleAssociationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add one card to a set",
)
async def add_card(
    request: SingleCardRequest,
    response: Response,
    preset_id: int = Path(gt=0),
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Add a single card to a set.

    Returns 201 when the card was added and 200 when it was already there.
    """
    created = await preset_service.add_card(db, preset_id, user.id, request.card_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return SingleAssociationResponse(
        preset_id=preset_id, card_id=request.card_id, created=created
    )


@router.get(
    "/{preset_id}/cards",
    response_model=PresetCardsResponse,
    summary="List the cards in a set",
)
async def list_set_cards(
    preset_id: int = Path(gt=0),
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage | None = Depends(get_storage),
):
    preset, cards = await preset_service.list_preset_cards(db, preset_id, user.id)
    return PresetCardsResponse(
        preset=PresetSummary.model_validate(preset),
        cards=[
            CardOut(id=card.id, name=card.name, image=resolve_image(storage, card.image))
            for card in cards
        ],
    )


@router.delete(
    "/{preset_id}/cards/{card_id}",
    response_model=MessageResponse,
    summary="Remove a card from a set",
)
async def remove_card(
    preset_id: int = Path(gt=0),
    card_id: int = Path(gt=0),
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await preset_service.remove_card(db, preset_id, user.id, card_id)
    return MessageResponse(message="association_removed")
