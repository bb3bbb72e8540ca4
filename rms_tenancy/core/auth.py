"""
Token and password primitives shared by the tenant service and the gateway
"""

from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from passlib.context import CryptContext
from typing import Any, Dict, Optional
import uuid

from rms_tenancy.core.config import get_settings
from rms_tenancy.core.exceptions import UnauthorizedError
from rms_tenancy.core.tenant_context import Identity

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_access_token(
    user_id: uuid.UUID,
    tenant_id: Optional[uuid.UUID],
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Signed token for a tenant user, or for an operator when ``tenant_id`` is None"""
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    claims: Dict[str, Any] = {"sub": str(user_id), "role": role, "iat": issued_at, "exp": issued_at + lifetime}
    if tenant_id is not None:
        claims["tenant_id"] = str(tenant_id)

    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a token with a valid signature and expiry, else None"""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def identity_from_token(token: Optional[str]) -> Identity:
    if not token:
        raise UnauthorizedError("Access token required")
    claims = decode_access_token(token)
    if claims is None:
        raise UnauthorizedError("Invalid or expired token")
    return Identity.from_claims(claims)
