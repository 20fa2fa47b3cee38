"""
SessionRecord model - server-side session storage.

The session cookie only carries a signed opaque id; everything else lives
here. `data` holds the public identity of the logged-in user (under "user")
plus any auxiliary values such as the "views" counter. `user_id` mirrors the
identity's id so a user's sessions can be found or cascaded on delete.

Rows past `expires_at` are treated as absent and purged at startup.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from cardsets.database import Base


class SessionRecord(Base):
    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # NULL for anonymous sessions
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
