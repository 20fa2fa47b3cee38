"""
FastAPI dependencies for authentication.

Dependencies are reusable functions that FastAPI injects into route handlers.
The authentication gate chains on the session dependency:

  get_session (cookie -> SessionContext)
      └── require_user (SessionContext -> SessionUser)

Every protected endpoint declares require_user as a parameter. If the session
carries no identity the request is rejected with 401 before the route
handler runs. The gate reads the session only; it has no side effects.
"""

from dataclasses import dataclass

from fastapi import Depends

from cardsets.exceptions import UnauthorizedError
from cardsets.sessions import SessionContext, get_session


@dataclass(frozen=True)
class SessionUser:
    """The authenticated identity attached to a session."""
    id: int
    name: str
    surname: str
    email: str

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "surname": self.surname,
            "email": self.email,
        }


async def require_user(
    session: SessionContext = Depends(get_session),
) -> SessionUser:
    """
    Return the session's authenticated user.

    Raises:
        UnauthorizedError: If the session is anonymous.
    """
    if not session.is_authenticated:
        raise UnauthorizedError()

    user = session.user
    return SessionUser(
        id=user["id"],
        name=user["name"],
        surname=user["surname"],
        email=user["email"],
    )
