"""
Card service - card creation, listing and image attachment.

Image attachment pipeline (each step can reject the request):
  1. Require a file payload no larger than MAX_UPLOAD_BYTES
  2. Look up the card (404 if absent)
  3. Probe the format; only ALLOWED_FORMATS are accepted
  4. Normalize: downscale to IMAGE_MAX_WIDTH, re-encode as JPEG
  5. Store the bytes under a generated filename with the configured backend
  6. Save the filename (not the URL) on the card row

Nothing is written to the card row unless every previous step succeeded, so
a rejected upload leaves the card's image untouched.
"""

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cardsets.config import settings
from cardsets.exceptions import CardNotFoundError, StorageUnavailableError, ValidationError
from cardsets.imaging import (
    ALLOWED_FORMATS,
    ProcessedImage,
    generate_filename,
    normalize_image,
    probe_format,
)
from cardsets.models.card import Card
from cardsets.storage import ImageStorage, StoredImage


async def create_card(db: AsyncSession, name: str) -> Card:
    """Create a card with no image."""
    card = Card(name=name)
    db.add(card)
    await db.flush()
    return card


async def list_cards(db: AsyncSession) -> list[Card]:
    result = await db.execute(select(Card).order_by(Card.id))
    return list(result.scalars().all())


async def attach_image(
    db: AsyncSession,
    storage: ImageStorage | None,
    card_id: int,
    data: bytes | None,
) -> tuple[Card, StoredImage, ProcessedImage]:
    """
    Normalize an uploaded image, store it, and attach it to a card.

    Args:
        db: Database session.
        storage: The configured storage backend (None if unavailable).
        card_id: Card to attach the image to.
        data: Raw uploaded bytes, or None if no file was sent.

    Returns:
        Tuple of (updated Card, StoredImage, ProcessedImage).

    Raises:
        ValidationError: Missing file, file too large, or format not allowed.
        CardNotFoundError: If the card doesn't exist.
        StorageUnavailableError: If no storage backend is configured.
    """
    if not data:
        raise ValidationError({"image": "Image file is required (field name: image)"})
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError({"image": "Image must be at most 10MB"})

    card = await db.get(Card, card_id)
    if card is None:
        raise CardNotFoundError(card_id)

    fmt = await run_in_threadpool(probe_format, data)
    if fmt not in ALLOWED_FORMATS:
        raise ValidationError({"image": "Unsupported image format"})

    processed = await run_in_threadpool(
        normalize_image,
        data,
        settings.IMAGE_MAX_WIDTH,
        settings.IMAGE_JPEG_QUALITY,
    )

    if storage is None:
        raise StorageUnavailableError()
    stored = await storage.store(processed.data, generate_filename())

    card.image = stored.key
    await db.flush()
    return card, stored, processed
