"""
Card model - a named card with an optional image.

Cards are created without an image; the image is attached later through
POST /cards/{id}/image, which normalizes the upload and stores it with the
configured storage backend.

Only the generated filename is persisted in `image`, never the full URL.
The URL depends on the storage backend (local /uploads path vs. blob URL)
and is built at read time, so switching backends needs no data migration.
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from cardsets.database import Base


class Card(Base):
    __tablename__ = "card"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Stored filename / blob key; NULL until an image is attached
    image: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
