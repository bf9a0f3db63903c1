import logging
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from blogosphere.core.exceptions import BlogosphereError, Forbidden, Unauthorized
from blogosphere.core.security import get_token_user_id
from blogosphere.db.models import User
from blogosphere.db.session import get_db

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Obtener usuario actual desde el token JWT del header Authorization"""
    if not credentials or not credentials.credentials:
        raise Unauthorized("Access token is required")

    user_id = get_token_user_id(credentials.credentials)

    # Buscar usuario en base de datos
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise Unauthorized("User not found")

    if not user.is_active:
        raise Unauthorized("Account is deactivated")

    return user

def require_role(required_role: str):
    """Dependency factory para requerir un rol específico"""
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != required_role:
            raise Forbidden(f"Role '{required_role}' required")
        return current_user

    return role_checker

require_admin = require_role("admin")

def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Obtener usuario actual opcionalmente (sin lanzar error si no está autenticado)"""
    if not credentials or not credentials.credentials:
        return None

    try:
        user_id = get_token_user_id(credentials.credentials)
    except BlogosphereError as e:
        logger.debug("Token opcional ignorado: %s", e)
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        return None

    return user
