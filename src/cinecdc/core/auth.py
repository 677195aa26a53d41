"""Bearer API key check for the /api/v1 routers.

A missing header and a wrong key both answer 401 with a Bearer challenge, so
the CLI can tell an auth problem apart from a daemon that is not running.
"""

import secrets

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from cinecdc.core.config import get_settings

security = HTTPBearer(auto_error=False)

CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Security(security),
) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing API key", headers=CHALLENGE)
    expected = get_settings().api_key
    if not secrets.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid API key", headers=CHALLENGE)
    return credentials.credentials
