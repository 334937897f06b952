from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError
from jose.jwt import decode, encode
from sqlalchemy.orm import Session

from pacer.config import get_db, get_settings
from pacer.models.models import User
from pacer.schemas.auth_schemas import AuthTokenPayload
from pacer.utils.logger import get_logger

logger = get_logger("auth")


def create_access_token(data: AuthTokenPayload) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    return encode(data.model_dump(exclude_none=True), settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: Optional[str]) -> AuthTokenPayload:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    settings = get_settings()
    try:
        payload = decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return AuthTokenPayload(**payload)
    except JWTError as e:
        logger.warning("token rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def get_user_by_email(email: str, db: Session) -> User | None:
    return db.query(User).filter(User.email == email).first()


def get_current_user(access_token: Optional[str] = Cookie(None), db: Session = Depends(get_db)) -> User:
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token",
        )

    payload = verify_token(access_token)
    if payload.sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )
    user = get_user_by_email(payload.sub, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return user


def require_agent_key(x_agent_api_key: Optional[str] = Header(None)) -> None:
    """Guard for the tutor-agent endpoints; a server without a configured key refuses them."""
    expected = get_settings().agent_api_key
    if not expected or x_agent_api_key != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid agent API key")
