"""Shared FastAPI dependencies."""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from optout.config import settings

security = HTTPBasic()


def _credentials_match(credentials: HTTPBasicCredentials) -> bool:
    correct_username = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.AUTH_USERNAME.encode("utf-8")
    )
    correct_password = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.AUTH_PASSWORD.encode("utf-8")
    )
    return correct_username and correct_password


def require_auth(credentials: HTTPBasicCredentials = Depends(security)) -> str:
    """Verify HTTP Basic Auth credentials against environment variables."""
    if not _credentials_match(credentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


def get_client_ip(request: Request) -> str:
    """Requester origin address as seen by the app server."""
    if request.client and request.client.host:
        return request.client.host
    return "0.0.0.0"
