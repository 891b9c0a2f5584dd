import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.core import config


def verify_admin_credentials(username: str, password: str) -> bool:
    # No operator is configured until both values are set
    if not config.ADMIN_USERNAME or not config.ADMIN_PASSWORD:
        return False
    username_ok = hmac.compare_digest(username.encode(), config.ADMIN_USERNAME.encode())
    password_ok = hmac.compare_digest(password.encode(), config.ADMIN_PASSWORD.encode())
    return username_ok and password_ok


def verify_api_key(api_key: str) -> bool:
    if not config.ADMIN_API_KEY:
        return False
    return hmac.compare_digest(api_key.encode(), config.ADMIN_API_KEY.encode())


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=config.ADMIN_SESSION_EXPIRE_HOURS)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Return the subject of a valid, unexpired token, else None."""
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")
