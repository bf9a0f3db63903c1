from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from blogosphere.auth.dependencies import (
    get_current_user, get_current_user_optional, require_admin
)
from blogosphere.db.models import User
from blogosphere.db.session import get_db
from blogosphere.users.schemas import (
    PasswordChange, PublicUserResponse, UserLogin, UserRegister, UserResponse, UserUpdate
)
from blogosphere.users.service import UserService

router = APIRouter()

def _user_payload(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(by_alias=True, mode="json")

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db)
):
    """Registrar un nuevo usuario"""
    user = UserService.register(db, user_data)

    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"user": _user_payload(user)}
    }

@router.post("/login")
async def login(
    credentials: UserLogin,
    db: Session = Depends(get_db)
):
    """Login con email y contraseña"""
    user, token = UserService.authenticate(db, credentials.email, credentials.password)

    return {
        "success": True,
        "message": "Login successful",
        "data": {"user": _user_payload(user), "token": token}
    }

@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    """Obtener perfil del usuario actual"""
    return {
        "success": True,
        "data": {"user": _user_payload(current_user)}
    }

@router.put("/profile")
async def update_profile(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Actualizar perfil del usuario actual"""
    user = UserService.update_profile(db, current_user, user_data)

    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": _user_payload(user)}
    }

@router.put("/change-password")
async def change_password(
    passwords: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cambiar contraseña del usuario actual"""
    UserService.change_password(db, current_user, passwords.old_password, passwords.new_password)

    return {
        "success": True,
        "message": "Password changed successfully"
    }

@router.get("", response_model=List[UserResponse])
async def get_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    role: Optional[str] = Query(None, pattern="^(user|admin)$"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Obtener lista de usuarios (solo admin)"""
    return UserService.get_users(db, skip=skip, limit=limit, role=role, is_active=is_active)

@router.get("/{user_id}")
async def get_user(
    user_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    """Obtener perfil público de un usuario"""
    public_user = UserService.get_public_profile(db, user_id, viewer=current_user)

    return {
        "success": True,
        "data": {
            "user": PublicUserResponse(**public_user).model_dump(by_alias=True, mode="json")
        }
    }
