"""
Cards router - card creation, listing and image upload.

Endpoints:
  POST /cards                  - Create a card (no image yet)
  GET  /cards                  - List cards with resolved image URLs
  POST /cards/{card_id}/image  - Upload, normalize and attach an image

All endpoints require an authenticated session.
"""

from fastapi import APIRouter, Depends, File, Path, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardsets.config import settings
from cardsets.database import get_db
from cardsets.dependencies import SessionUser, require_user
from cardsets.schemas.card import (
    CardCreateRequest,
    CardImageResponse,
    CardListResponse,
    CardOut,
    CardResponse,
    CardWithImageOut,
    ProcessedImageInfo,
)
from cardsets.services import card_service
from cardsets.storage import ImageStorage, get_storage, resolve_image

router = APIRouter()


@router.post(
    "",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a card",
)
async def create_card(
    request: CardCreateRequest,
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    card = await card_service.create_card(db, request.name)
    return CardResponse(card=CardOut(id=card.id, name=card.name, image=None))


@router.get("", response_model=CardListResponse, summary="List cards")
async def list_cards(
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage | None = Depends(get_storage),
):
    cards = await card_service.list_cards(db)
    return CardListResponse(
        cards=[
            CardOut(id=card.id, name=card.name, image=resolve_image(storage, card.image))
            for card in cards
        ]
    )


@router.post(
    "/{card_id}/image",
    response_model=CardImageResponse,
    summary="Attach an image to a card",
)
async def upload_card_image(
    card_id: int = Path(gt=0),
    image: UploadFile | None = File(default=None),
    user: SessionUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage | None = Depends(get_storage),
):
    """
    Upload an image for a card (multipart field **image**, at most 10MB).

    Accepted input formats: JPEG, PNG, WebP, GIF, TIFF, AVIF. The image is
    downscaled to at most 1200px wide and stored as JPEG.
    """
    data = None
    if image is not None:
        # Read one byte past the limit so oversize uploads are detectable
        data = await image.read(settings.MAX_UPLOAD_BYTES + 1)

    card, stored, processed = await card_service.attach_image(db, storage, card_id, data)
    return CardImageResponse(
        card=CardWithImageOut(
            id=card.id,
            name=card.name,
            image=ProcessedImageInfo(
                filename=stored.key,
                url=stored.url,
                width=processed.width,
                height=processed.height,
            ),
        )
    )
