"""
Preset service - user-owned sets of cards and their associations.

Ownership:
  Every function takes the caller's user_id and every preset lookup is
  filtered by it. A preset owned by someone else is reported exactly like a
  preset that doesn't exist (PresetNotFoundError -> 404).

Duplicate associations:
  Adding a card that is already in the preset is a no-op, never an error.
  The bulk endpoint reports it under "skipped", the single endpoint reports
  created=False. Pairs are written with one conflict-ignoring INSERT, so a
  pair committed by a concurrent request is skipped too.

Known gap:
  add_cards() checks that every card exists and then inserts. A card deleted
  between the two statements makes the insert fail on its foreign key
  (internal error) rather than leaving a dangling association.
"""

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsets.exceptions import (
    AssociationNotFoundError,
    MissingCardsError,
    PresetNotFoundError,
    ValidationError,
)
from cardsets.models.card import Card
from cardsets.models.preset import Preset, PresetCard


async def create_preset(db: AsyncSession, user_id: int, name: str) -> Preset:
    preset = Preset(name=name, user_id=user_id)
    db.add(preset)
    await db.flush()
    return preset


async def list_presets(db: AsyncSession, user_id: int) -> list[Preset]:
    result = await db.execute(
        select(Preset).where(Preset.user_id == user_id).order_by(Preset.id)
    )
    return list(result.scalars().all())


async def get_owned_preset(db: AsyncSession, preset_id: int, user_id: int) -> Preset:
    """
    Fetch a preset that belongs to user_id.

    Raises:
        PresetNotFoundError: If it doesn't exist or belongs to another user.
    """
    result = await db.execute(
        select(Preset).where(Preset.id == preset_id, Preset.user_id == user_id)
    )
    preset = result.scalar_one_or_none()
    if preset is None:
        raise PresetNotFoundError(preset_id)
    return preset


async def _missing_card_ids(db: AsyncSession, card_ids: list[int]) -> list[int]:
    result = await db.execute(select(Card.id).where(Card.id.in_(card_ids)))
    existing = set(result.scalars().all())
    return [card_id for card_id in card_ids if card_id not in existing]


async def _insert_links(db: AsyncSession, preset_id: int, card_ids: list[int]) -> int:
    """
    Insert (preset_id, card_id) pairs, ignoring pairs that already exist.

    Returns the number of rows actually inserted. A foreign key violation
    still raises IntegrityError.
    """
    rows = [{"preset_id": preset_id, "card_id": card_id} for card_id in card_ids]
    dialect = db.get_bind().dialect.name

    if dialect in ("sqlite", "postgresql"):
        dialect_insert = sqlite_insert if dialect == "sqlite" else postgresql_insert
        stmt = dialect_insert(PresetCard).values(rows).on_conflict_do_nothing(
            index_elements=[PresetCard.preset_id, PresetCard.card_id]
        )
        result = await db.execute(stmt)
        return result.rowcount

    # No ON CONFLICT support: one savepoint per pair
    inserted = 0
    for row in rows:
        try:
            async with db.begin_nested():
                await db.execute(insert(PresetCard).values(**row))
        except IntegrityError:
            if await db.get(PresetCard, (preset_id, row["card_id"])) is None:
                raise
            continue
        inserted += 1
    return inserted


async def add_cards(
    db: AsyncSession,
    preset_id: int,
    user_id: int,
    card_ids: list[int],
) -> tuple[int, int, int]:
    """
    Associate many cards with a preset in one request.

    All-or-nothing precondition: if any card id doesn't exist, nothing is
    inserted and the missing ids are reported.

    Returns:
        Tuple of (inserted, skipped, processed) where processed is the
        number of distinct card ids.

    Raises:
        ValidationError: If card_ids is empty.
        PresetNotFoundError: If the preset isn't owned by user_id.
        MissingCardsError: If any card id doesn't exist.
    """
    unique_ids = list(dict.fromkeys(card_ids))
    if not unique_ids:
        raise ValidationError({"body": "Expected a non-empty array of { id: number }"})

    await get_owned_preset(db, preset_id, user_id)

    missing = await _missing_card_ids(db, unique_ids)
    if missing:
        raise MissingCardsError(missing)

    inserted = await _insert_links(db, preset_id, unique_ids)
    return inserted, len(unique_ids) - inserted, len(unique_ids)


async def add_card(
    db: AsyncSession,
    preset_id: int,
    user_id: int,
    card_id: int,
) -> bool:
    """
    Associate a single card with a preset.

    Returns:
        True if the association was created, False if it already existed.
    """
    inserted, _, _ = await add_cards(db, preset_id, user_id, [card_id])
    return inserted == 1


async def list_preset_cards(
    db: AsyncSession,
    preset_id: int,
    user_id: int,
) -> tuple[Preset, list[Card]]:
    preset = await get_owned_preset(db, preset_id, user_id)
    result = await db.execute(
        select(Card)
        .join(PresetCard, PresetCard.card_id == Card.id)
        .where(PresetCard.preset_id == preset.id)
        .order_by(Card.id)
    )
    return preset, list(result.scalars().all())


async def remove_card(
    db: AsyncSession,
    preset_id: int,
    user_id: int,
    card_id: int,
) -> None:
    """
    Remove one card from a preset.

    Raises:
        PresetNotFoundError: If the preset isn't owned by user_id.
        AssociationNotFoundError: If the card wasn't in the preset.
    """
    await get_owned_preset(db, preset_id, user_id)
    result = await db.execute(
        delete(PresetCard).where(
            PresetCard.preset_id == preset_id,
            PresetCard.card_id == card_id,
        )
    )
    if not result.rowcount:
        raise AssociationNotFoundError(preset_id, card_id)


async def delete_preset(db: AsyncSession, preset_id: int, user_id: int) -> None:
    """Delete a preset; its associations are removed by ON DELETE CASCADE."""
    preset = await get_owned_preset(db, preset_id, user_id)
    await db.delete(preset)
    await db.flush()
