from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from typing import Optional

from app.core import config
from app.core.esim_provider import build_provisioner
from app.core.notifications import build_mailer
from app.core.security import decode_access_token, verify_api_key
from app.schemas.token import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login", auto_error=False)  # cookie is the fallback


def get_current_operator(
    request: Request, token: Optional[str] = Depends(oauth2_scheme)
) -> TokenData:
    """
    Operator session from a Bearer JWT, the admin_session cookie, or the
    static ADMIN_API_KEY as a Bearer token (scripts).
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if token and verify_api_key(token):
        return TokenData(username="api-key")

    token = token or request.cookies.get(config.ADMIN_SESSION_COOKIE)
    if not token:
        raise credentials_exception

    username = decode_access_token(token)
    if username is None:
        raise credentials_exception
    return TokenData(username=username)


def get_provisioner():
    """eSIM provisioning strategy; the mock one only in TEST_MODE."""
    return build_provisioner(config.TEST_MODE)


def get_mailer():
    return build_mailer()
