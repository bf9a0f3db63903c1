import logging
import re
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blogosphere.core.exceptions import (
    EmailAlreadyRegistered, Unauthorized, UserNotFound, UsernameTaken
)
from blogosphere.core.security import create_access_token, hash_password, verify_password
from blogosphere.core.time import utcnow
from blogosphere.db.models import User, default_profile, default_user_settings
from blogosphere.users.schemas import (
    USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH, UserRegister, UserUpdate
)

logger = logging.getLogger(__name__)


class UserService:
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Obtener usuario por ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Obtener usuario por email"""
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def get_user_by_username(db: Session, username: str) -> Optional[User]:
        """Obtener usuario por username"""
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def get_users(
        db: Session,
        skip: int = 0,
        limit: int = 50,
        role: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> List[User]:
        """Obtener lista de usuarios con filtros (solo admin)"""
        query = db.query(User)

        if role:
            query = query.filter(User.role == role)

        if is_active is not None:
            query = query.filter(User.is_active == is_active)

        return query.order_by(desc(User.created_at)).offset(skip).limit(limit).all()

    @staticmethod
    def username_from_email(db: Session, email: str) -> str:
        """Username libre derivado de la parte local del email"""
        base = re.sub(r"[^A-Za-z0-9_]", "_", email.split("@")[0])[:USERNAME_MAX_LENGTH]
        base = base.ljust(USERNAME_MIN_LENGTH, "_")

        username = base
        suffix = 1
        while UserService.get_user_by_username(db, username):
            suffix += 1
            tail = str(suffix)
            username = base[:USERNAME_MAX_LENGTH - len(tail)] + tail
        return username

    @staticmethod
    def register(db: Session, data: UserRegister) -> User:
        """Registrar un nuevo usuario.

        La unicidad de email y username se comprueba con dos consultas
        consecutivas; las restricciones UNIQUE de la tabla cubren la carrera
        entre la consulta y el insert.
        """
        email = data.email.lower()
        if UserService.get_user_by_email(db, email):
            raise EmailAlreadyRegistered()

        if data.username:
            username = data.username
            if UserService.get_user_by_username(db, username):
                raise UsernameTaken()
        else:
            username = UserService.username_from_email(db, email)

        now = utcnow()
        user = User(
            email=email,
            password_hash=hash_password(data.password),
            first_name=data.first_name or "",
            last_name=data.last_name or "",
            username=username,
            role="user",
            is_active=True,
            profile=default_profile(),
            settings=default_user_settings(),
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            # Otro registro simultáneo ganó la carrera
            if UserService.get_user_by_email(db, email):
                raise EmailAlreadyRegistered()
            raise UsernameTaken()
        db.refresh(user)

        logger.info("User registered: %s", user.id)
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Tuple[User, str]:
        """Login: devuelve el usuario y un token firmado"""
        user = UserService.get_user_by_email(db, email)
        if not user:
            raise Unauthorized("Invalid credentials")

        if not user.is_active:
            raise Unauthorized("Account is deactivated")

        if not verify_password(password, user.password_hash):
            raise Unauthorized("Invalid credentials")

        token = create_access_token(user.id)

        user.last_login_at = utcnow()
        db.commit()
        db.refresh(user)

        logger.info("User logged in: %s", user.id)
        return user, token

    @staticmethod
    def update_profile(db: Session, user: User, data: UserUpdate) -> User:
        """Actualizar perfil del usuario actual"""
        changes = data.model_dump(exclude_unset=True)

        username = changes.get("username")
        if username and username != user.username:
            if UserService.get_user_by_username(db, username):
                raise UsernameTaken()
            user.username = username

        for field in ("first_name", "last_name"):
            if changes.get(field) is not None:
                setattr(user, field, changes[field])

        # Los JSON se reemplazan (no se mutan) para que SQLAlchemy detecte el cambio
        if data.profile is not None:
            profile = dict(user.profile or default_profile())
            profile.update(data.profile.model_dump(exclude_none=True))
            user.profile = profile

        if data.settings is not None:
            user_settings = dict(user.settings or default_user_settings())
            user_settings.update(data.settings.model_dump(exclude_none=True, by_alias=True))
            user.settings = user_settings

        user.updated_at = utcnow()
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def change_password(db: Session, user: User, old_password: str, new_password: str) -> None:
        """Cambiar contraseña verificando la actual"""
        if not verify_password(old_password, user.password_hash):
            raise Unauthorized("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        user.updated_at = utcnow()
        db.commit()
        logger.info("Password changed for user %s", user.id)

    @staticmethod
    def get_public_profile(db: Session, user_id: int, viewer: Optional[User] = None) -> dict:
        """Perfil público; si es privado solo se expone el avatar"""
        user = UserService.get_user_by_id(db, user_id)
        if not user:
            raise UserNotFound()

        profile = dict(user.profile or {})
        is_public = (user.settings or {}).get("publicProfile", True)
        if not is_public and (viewer is None or viewer.id != user.id):
            profile = {"avatar": profile.get("avatar", "")}

        return {
            "id": user.id,
            "username": user.username,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "profile": profile,
            "created_at": user.created_at,
        }

    @staticmethod
    def set_role(db: Session, email: str, role: str) -> User:
        """Cambiar el rol de un usuario (uso desde scripts de administración)"""
        user = UserService.get_user_by_email(db, email)
        if not user:
            raise UserNotFound(f"User with email {email} not found")
        user.role = role
        db.commit()
        db.refresh(user)
        return user
