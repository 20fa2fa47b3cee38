"""
Preset (a.k.a. "set") and PresetCard models.

A Preset is a user-owned named collection of cards. Every query that reads
or mutates a preset filters on user_id taken from the session, so presets
are never visible across users.

PresetCard is the many-to-many join between presets and cards. The
composite primary key allows at most one row per (preset, card) pair.

Cascade policy:
  Both foreign keys are ON DELETE CASCADE. Deleting a preset or a card
  removes its association rows; deleting a user removes their presets.
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cardsets.database import Base


class Preset(Base):
    __tablename__ = "preset"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Owner - always taken from the session, never from client input
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class PresetCard(Base):
    __tablename__ = "preset_cards"

    preset_id: Mapped[int] = mapped_column(
        ForeignKey("preset.id", ondelete="CASCADE"),
        primary_key=True,
    )
    card_id: Mapped[int] = mapped_column(
        ForeignKey("card.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
