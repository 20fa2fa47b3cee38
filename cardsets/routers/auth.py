"""
Authentication router - registration, login, logout and session probes.

Endpoints:
  POST /register  - Create a user and log them in (201)
  POST /login     - Authenticate and bind the user to a fresh session
  POST /logout    - Destroy the session and clear the cookie
  GET  /whoami    - The session's user and session id (auth required)
  GET  /private   - Protected probe (auth required)
  GET  /test      - Session counter probe (no auth)

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - The session cookie carries only a signed opaque id; the identity lives
    in the server-side session row.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardsets.database import get_db
from cardsets.dependencies import SessionUser, require_user
from cardsets.schemas.auth import (
    AuthResponse,
    LoginRequest,
    OkResponse,
    PrivateResponse,
    RegisterRequest,
    SessionTestResponse,
    UserPublic,
    WhoAmIResponse,
)
from cardsets.services import auth_service
from cardsets.sessions import SessionContext, SessionStore, get_session, get_session_store

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    raw_request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """
    Register a new user and start an authenticated session.

    - **name** / **surname**: Required, 1-100 characters
    - **email**: Required, at most 255 characters, unique (case-insensitive)
    - **password**: 8-128 characters
    """
    # Loaded here rather than as a dependency so an invalid body never reaches the store
    session = await store.load_request(raw_request)
    user, session = await auth_service.register(
        db=db,
        store=store,
        session=session,
        name=request.name,
        surname=request.surname,
        email=request.email,
        password=request.password,
    )
    store.set_cookie(response, session)
    return AuthResponse(user=UserPublic.model_validate(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and start a session",
)
async def login(
    request: LoginRequest,
    raw_request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """
    Authenticate with email and password.

    On success the session id is regenerated and the session cookie is set.
    Unknown emails and wrong passwords get the same 401 response.
    """
    session = await store.load_request(raw_request)
    user, session = await auth_service.login(
        db=db,
        store=store,
        session=session,
        email=request.email,
        password=request.password,
    )
    store.set_cookie(response, session)
    return AuthResponse(user=UserPublic.model_validate(user))


@router.post("/logout", response_model=OkResponse, summary="End the session")
async def logout(
    response: Response,
    store: SessionStore = Depends(get_session_store),
    session: SessionContext = Depends(get_session),
):
    """Destroy the server-side session and clear the session cookie."""
    await auth_service.logout(store, session)
    store.clear_cookie(response)
    return OkResponse()


@router.get("/whoami", response_model=WhoAmIResponse, summary="Current user")
async def whoami(
    user: SessionUser = Depends(require_user),
    session: SessionContext = Depends(get_session),
):
    return WhoAmIResponse(user=UserPublic(**user.as_dict()), session_id=session.session_id)


@router.get("/private", response_model=PrivateResponse, summary="Protected probe")
async def private(user: SessionUser = Depends(require_user)):
    return PrivateResponse(user=UserPublic(**user.as_dict()))


@router.get("/test", response_model=SessionTestResponse, summary="Session counter probe")
async def session_test(
    response: Response,
    store: SessionStore = Depends(get_session_store),
    session: SessionContext = Depends(get_session),
):
    """Increment a per-session view counter; useful to check the cookie round-trip."""
    views = int(session.data.get("views", 0)) + 1
    session = await store.set_value(session, "views", views)
    store.set_cookie(response, session)
    return SessionTestResponse(views=views, session_id=session.session_id)
