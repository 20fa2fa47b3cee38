"""
Server-side sessions backed by the relational store.

The client only ever holds a cookie containing the session id signed with
SESSION_SECRET (itsdangerous). The session itself (identity, counters) is a
row in the `sessions` table.

Handlers never mutate a session in place. They receive an immutable
SessionContext from the get_session dependency and pass it through the
SessionStore operations, each of which returns the next context:

    ctx = await store.regenerate(ctx)             # new id, old row deleted
    ctx = await store.attach_identity(ctx, user)  # persisted
    store.set_cookie(response, ctx)

Lifecycle:
  - A request without a valid cookie gets a fresh anonymous context. It is
    not written to the store (and no cookie is sent) until something is
    saved into it.
  - Login and registration regenerate the id to defeat session fixation.
  - Logout destroys the row and clears the cookie.

Each store operation commits on its own: a session write is visible to the
client's next request regardless of what the rest of the handler does.
"""

import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request, Response
from itsdangerous import BadSignature, Signer
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardsets.config import settings
from cardsets.database import get_db
from cardsets.models.session import SessionRecord


_signer = Signer(settings.SESSION_SECRET, salt="cardsets.session")


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def sign_session_id(session_id: str) -> str:
    return _signer.sign(session_id).decode()


def unsign_session_id(cookie_value: str | None) -> str | None:
    """Return the session id inside a cookie value, or None if it was tampered with."""
    if not cookie_value:
        return None
    try:
        return _signer.unsign(cookie_value).decode()
    except BadSignature:
        return None


@dataclass(frozen=True)
class SessionContext:
    """
    The session as seen by one request.

    Attributes:
        session_id: Opaque identifier (the unsigned cookie value).
        user: Public identity of the logged-in user, or None when anonymous.
        data: Auxiliary values stored alongside the identity.
        persisted: Whether a row for session_id exists in the store.
    """
    session_id: str
    user: dict | None = None
    data: dict = field(default_factory=dict)
    persisted: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class SessionStore:
    """Session persistence operations over one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(self, cookie_value: str | None) -> SessionContext:
        session_id = unsign_session_id(cookie_value)
        if session_id is not None:
            result = await self.db.execute(
                select(SessionRecord).where(
                    SessionRecord.session_id == session_id,
                    SessionRecord.expires_at > datetime.now(timezone.utc),
                )
            )
            record = result.scalar_one_or_none()
            if record is not None:
                data = dict(record.data or {})
                user = data.pop("user", None)
                return SessionContext(
                    session_id=record.session_id,
                    user=user,
                    data=data,
                    persisted=True,
                )
        return SessionContext(session_id=new_session_id())

    async def load_request(self, request: Request) -> SessionContext:
        return await self.load(request.cookies.get(settings.SESSION_COOKIE_NAME))

    async def save(self, ctx: SessionContext) -> SessionContext:
        """Insert or update the row for ctx, extending its expiry."""
        payload = dict(ctx.data)
        if ctx.user is not None:
            payload["user"] = ctx.user
        expires_at = datetime.now(timezone.utc) + timedelta(
            seconds=settings.SESSION_MAX_AGE_SECONDS
        )
        user_id = ctx.user["id"] if ctx.user is not None else None

        record = await self.db.get(SessionRecord, ctx.session_id)
        if record is None:
            record = SessionRecord(session_id=ctx.session_id)
            self.db.add(record)
        record.user_id = user_id
        record.data = payload
        record.expires_at = expires_at
        await self.db.commit()
        return replace(ctx, persisted=True)

    async def attach_identity(self, ctx: SessionContext, user: dict) -> SessionContext:
        return await self.save(replace(ctx, user=user))

    async def set_value(self, ctx: SessionContext, key: str, value) -> SessionContext:
        return await self.save(replace(ctx, data={**ctx.data, key: value}))

    async def regenerate(self, ctx: SessionContext) -> SessionContext:
        """
        Replace the session id. The old row is deleted so the previous id
        stops working; the identity is dropped and must be re-attached.
        """
        if ctx.persisted:
            await self.db.execute(
                delete(SessionRecord).where(SessionRecord.session_id == ctx.session_id)
            )
            await self.db.commit()
        return SessionContext(
            session_id=new_session_id(),
            data=dict(ctx.data),
        )

    async def destroy(self, ctx: SessionContext) -> None:
        await self.db.execute(
            delete(SessionRecord).where(SessionRecord.session_id == ctx.session_id)
        )
        await self.db.commit()

    async def purge_expired(self) -> int:
        result = await self.db.execute(
            delete(SessionRecord).where(
                SessionRecord.expires_at <= datetime.now(timezone.utc)
            )
        )
        await self.db.commit()
        return result.rowcount or 0

    @staticmethod
    def set_cookie(response: Response, ctx: SessionContext) -> None:
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            sign_session_id(ctx.session_id),
            max_age=settings.SESSION_MAX_AGE_SECONDS,
            httponly=True,
            samesite="lax",
            secure=settings.SESSION_COOKIE_SECURE,
        )

    @staticmethod
    def clear_cookie(response: Response) -> None:
        response.delete_cookie(
            settings.SESSION_COOKIE_NAME,
            httponly=True,
            samesite="lax",
            secure=settings.SESSION_COOKIE_SECURE,
        )


async def get_session_store(db: AsyncSession = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


async def get_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionContext:
    """
    FastAPI dependency: the session context for the current request.

    FastAPI resolves dependencies before validating the body, so handlers
    that must not touch the store on invalid input call
    store.load_request() themselves instead.
    """
    return await store.load_request(request)
