"""
Actor resolution for the observaciones API.

Tokens are issued by the trámites portal; this service only verifies them.
``get_current_user`` is the dependency of the write endpoints: it decodes
the Bearer JWT, reads the user id from ``sub`` and loads the active
``Usuario``.  The read endpoints use ``get_caller``, which also accepts
the platform's shared ``X-API-Key`` for internal services.
"""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.models.usuario import Usuario
from app.utils.security import verify_token

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Bearer scheme. There is no login endpoint in this service, so the plain
# HTTP bearer scheme is used instead of the OAuth2 password flow.
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> Usuario:
    """FastAPI dependency that resolves the caller's identity from a JWT.

    Args:
        credentials: ``Authorization: Bearer <token>`` parsed by ``bearer_scheme``.
        db: SQLAlchemy session supplied by ``get_db``.

    Returns:
        The authenticated ``Usuario`` ORM instance.

    Raises:
        HTTPException 401: If the token is missing, invalid or expired, or
                           if the referenced user no longer exists or has
                           been deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudo validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Usuario no autenticado", "code": "USER_NOT_AUTHENTICATED"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(credentials.credentials)
    except ValueError:
        raise credentials_exception

    # ``sub`` carries the user's primary key as a string.
    user_id_str: str | None = payload.get("sub")
    if user_id_str is None:
        raise credentials_exception

    try:
        user_id = int(user_id_str)
    except (TypeError, ValueError):
        raise credentials_exception

    user: Usuario | None = (
        db.query(Usuario)
        .filter(Usuario.id == user_id, Usuario.activo.is_(True))
        .first()
    )

    if user is None:
        logger.debug("get_current_user: usuario %d inexistente o inactivo", user_id)
        raise credentials_exception

    return user


# ---------------------------------------------------------------------------
# Internal callers (other services of the trámites platform) authenticate
# with a shared key sent in ``X-API-Key`` instead of a user token.
# ---------------------------------------------------------------------------


def _api_key_error(status_code: int, error: str, code: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "code": code})


def validate_api_key(api_key: str | None) -> None:
    """Check *api_key* against ``settings.API_KEY``.

    Raises:
        HTTPException 401: ``API_KEY_MISSING`` if the key is absent or empty.
        HTTPException 403: ``API_KEY_INVALID`` if it does not match, or if no
                           key is configured on this instance.
    """
    if not api_key:
        raise _api_key_error(
            status.HTTP_401_UNAUTHORIZED, "API Key requerida", "API_KEY_MISSING"
        )

    expected = get_settings().API_KEY
    if not expected or not secrets.compare_digest(api_key, expected):
        logger.warning("validate_api_key: clave rechazada")
        raise _api_key_error(
            status.HTTP_403_FORBIDDEN, "API Key no válida", "API_KEY_INVALID"
        )


def get_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[Session, Depends(get_db)],
    x_api_key: Annotated[str | None, Header()] = None,
) -> Usuario | None:
    """Dependency for read endpoints: API key or Bearer JWT.

    When ``X-API-Key`` is sent only the key is checked and no user is
    attached (returns ``None``).  Otherwise the Bearer token is resolved
    exactly like ``get_current_user``.  With neither credential the
    request is rejected with ``API_KEY_MISSING``.
    """
    if x_api_key is not None:
        validate_api_key(x_api_key)
        return None

    if credentials is None:
        validate_api_key(None)

    return get_current_user(credentials, db)
