"""
Security utilities: password hashing.

PASSWORD HASHING (Argon2)
  - Passwords are never stored in plaintext
  - Argon2 is memory-hard and time-hard, which makes GPU-based cracking
    expensive. The time cost is configurable via PASSWORD_HASH_ROUNDS.
  - We use passlib's CryptContext for safe, high-level Argon2 operations

Hashing deliberately burns CPU for tens of milliseconds. Route handlers call
the *_async variants, which run the work in the threadpool so the event loop
keeps serving other requests meanwhile.
"""

from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext

from cardsets.config import settings


# deprecated="auto" flags hashes from schemes dropped from this list for rehashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__rounds=settings.PASSWORD_HASH_ROUNDS,
)


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored Argon2 hash.

    This is a constant-time comparison to prevent timing attacks.
    """
    return pwd_context.verify(plain_password, hashed_password)


async def hash_password_async(plain_password: str) -> str:
    return await run_in_threadpool(hash_password, plain_password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)
