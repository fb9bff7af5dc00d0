"""
FastAPI dependencies for identity, authorization and the card cipher.

Dependency chain:

  get_current_identity (JWT -> active User -> Identity)
      ├── require_admin (Identity -> Identity)    [ADMIN role]
      └── require_member (Identity -> Identity)   [anyone but ADMIN]

  get_card_cipher (app.state -> CardCipher)

Routes never look at tokens or claims themselves; they receive an
Identity, and the services decide ownership through
app.domain.authorization.
"""

import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.domain.authorization import Identity, Role
from app.encryption import CardCipher
from app.models.user import User
from app.security import decode_access_token


# Tokens come from the external identity provider; tokenUrl only feeds
# Swagger UI's "Authorize" button.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


async def get_current_identity(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """
    Verify the bearer token and return the caller's Identity.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't
            exist or is deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return Identity(user_id=user.id, email=user.email, role=user.role)


async def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """
    Require the caller to hold the ADMIN role.

    Raises:
        HTTPException 403: If the caller is not an admin.
    """
    if identity.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return identity


async def require_member(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """
    Require a regular (non-admin) caller.

    Money movement and card self-service are member operations; admins
    manage cards through /admin and never act as a card holder.

    Raises:
        HTTPException 403: If the caller is an admin.
    """
    if identity.role == Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins cannot use member endpoints",
        )
    return identity


def get_card_cipher(request: Request) -> CardCipher:
    """The process-wide cipher created at startup (see app.main)."""
    return request.app.state.card_cipher
