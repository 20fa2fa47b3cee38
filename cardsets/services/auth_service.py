"""
Authentication service - registration, login and logout business logic.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses (including the session cookie).

Registration flow:
  1. Hash the password with Argon2id (in the threadpool)
  2. Insert the User and commit. The unique index on email is the only
     duplicate check, so two racing registrations can't both succeed.
  3. Regenerate the session id and attach the user's public identity

Login flow:
  1. Look up the user by (already normalized) email
  2. Verify the password against the stored hash
  3. Regenerate the session id and attach the user's public identity

Security notes:
  - Login returns the same error for "wrong password" and "email not found"
    to prevent user enumeration attacks
  - The session id changes on every privilege change (session fixation)
  - Only the public identity (id, name, surname, email) goes into the session
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsets.exceptions import DuplicateEmailError, InvalidCredentialsError
from cardsets.models.user import User
from cardsets.security import hash_password_async, verify_password_async
from cardsets.sessions import SessionContext, SessionStore

logger = logging.getLogger(__name__)


async def start_authenticated_session(
    store: SessionStore,
    session: SessionContext,
    identity: dict,
) -> SessionContext:
    """
    Regenerate the session id, then attach the identity to the session.

    If regeneration fails, the old id is kept and the identity is attached
    to it anyway: the caller's operation already succeeded and only
    session continuity is imperfect.
    """
    try:
        session = await store.regenerate(session)
    except SQLAlchemyError:
        await store.db.rollback()
        logger.warning(
            "Session regeneration failed for user %s; keeping existing session id",
            identity["id"],
            exc_info=True,
        )
    return await store.attach_identity(session, identity)


async def register(
    db: AsyncSession,
    store: SessionStore,
    session: SessionContext,
    name: str,
    surname: str,
    email: str,
    password: str,
) -> tuple[User, SessionContext]:
    """
    Register a new user and log them in.

    Args:
        db: Database session.
        store: Session store bound to the same database session.
        session: The caller's current session context.
        name / surname: Trimmed names.
        email: Trimmed, lowercased email (must be unique).
        password: Plaintext password (hashed before storage).

    Returns:
        Tuple of (User instance, authenticated SessionContext).

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    user = User(
        name=name,
        surname=surname,
        email=email,
        password_hash=await hash_password_async(password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateEmailError(email)

    logger.info("Registered user %s", user.id)
    session = await start_authenticated_session(store, session, user.public_identity())
    return user, session


async def login(
    db: AsyncSession,
    store: SessionStore,
    session: SessionContext,
    email: str,
    password: str,
) -> tuple[User, SessionContext]:
    """
    Authenticate a user and bind their identity to a fresh session.

    Raises:
        InvalidCredentialsError: If the email doesn't exist or the password is wrong.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    # Same error for both cases
    if user is None:
        raise InvalidCredentialsError()

    if not await verify_password_async(password, user.password_hash):
        raise InvalidCredentialsError()

    logger.info("User %s logged in", user.id)
    session = await start_authenticated_session(store, session, user.public_identity())
    return user, session


async def logout(store: SessionStore, session: SessionContext) -> None:
    """Destroy the session record entirely (not just its identity)."""
    await store.destroy(session)
