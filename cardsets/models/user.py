"""
User model - the authentication identity.

Each User is a login credential (email + hashed password) plus the public
profile shown back to clients (name, surname, email). The password is stored
as an Argon2id hash and is never part of any response or session payload.

Emails are stored lowercase. Uniqueness is enforced by the database, which
makes the unique index the single authority for duplicate registrations.
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from cardsets.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)

    # Login identifier, normalized to trimmed lowercase before insert
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash of the password (never store plaintext!)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def public_identity(self) -> dict:
        """The fields safe to put in a session or a response body."""
        return {
            "id": self.id,
            "name": self.name,
            "surname": self.surname,
            "email": self.email,
        }
