import time
from datetime import timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext

from blogosphere.core.config import settings
from blogosphere.core.exceptions import Unauthorized

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Crear token de acceso JWT"""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)

    # exp como timestamp Unix
    expire = int(time.time() + expires_delta.total_seconds())
    to_encode = {"sub": str(user_id), "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """Verificar y decodificar token JWT"""
    try:
        # jose valida la firma y la expiración
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid or expired token")

    if payload.get("type") != token_type:
        raise Unauthorized("Token type invalid")

    if not payload.get("sub"):
        raise Unauthorized("Invalid token payload")

    return payload

def get_token_user_id(token: str) -> int:
    """Id de usuario embebido en el token"""
    payload = verify_token(token)
    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthorized("Invalid token payload")

def hash_password(password: str) -> str:
    """Hashear contraseña"""
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verificar contraseña"""
    return pwd_context.verify(plain_password, hashed_password)
