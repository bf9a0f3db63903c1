from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status

from blogosphere.auth.dependencies import get_current_user, get_current_user_optional
from blogosphere.db.models import User
from blogosphere.posts.schemas import LikeResult, PostCreate, PostResponse, PostsPage, PostUpdate
from blogosphere.posts.service import PostService, get_post_service, visitor_key

router = APIRouter()

def _post_payload(post) -> dict:
    return PostResponse.model_validate(post).model_dump(by_alias=True, mode="json")

@router.get("", response_model=PostsPage)
async def get_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    author: Optional[int] = Query(None),
    tag: Optional[str] = Query(None),
    post_service: PostService = Depends(get_post_service)
):
    """Obtener lista pública de posts publicados"""
    result = post_service.list_posts(page=page, limit=limit, author=author, tag=tag)
    return PostsPage.model_validate(result)

@router.get("/my-posts")
async def get_my_posts(
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Todos los posts del usuario actual (borradores y publicados)"""
    posts = post_service.list_my_posts(current_user)
    return {"success": True, "data": {"posts": [_post_payload(p) for p in posts]}}

@router.get("/my-drafts")
async def get_my_drafts(
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Borradores del usuario actual"""
    posts = post_service.list_my_drafts(current_user)
    return {"success": True, "data": {"posts": [_post_payload(p) for p in posts]}}

@router.get("/user/{user_id}")
async def get_user_posts(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    include_unpublished: bool = Query(False, alias="includeUnpublished"),
    current_user: Optional[User] = Depends(get_current_user_optional),
    post_service: PostService = Depends(get_post_service)
):
    """Posts de un usuario"""
    posts = post_service.list_user_posts(
        user_id,
        caller=current_user,
        page=page,
        limit=limit,
        include_unpublished=include_unpublished
    )
    return {"posts": [_post_payload(p) for p in posts]}

@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    post_service: PostService = Depends(get_post_service)
):
    """Obtener post por ID.

    Las vistas no se cuentan aquí: el cliente llama a POST /{post_id}/view.
    """
    return post_service.get_post(post_id, current_user)

@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Crear nuevo post"""
    return post_service.create_post(post_data, current_user)

@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Actualizar post (autor o admin)"""
    return post_service.update_post(post_id, post_data, current_user)

@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Eliminar post (autor o admin)"""
    post_service.delete_post(post_id, current_user)
    return {"message": "Post deleted successfully"}

@router.post("/{post_id}/view")
async def record_view(
    post_id: int,
    request: Request,
    current_user: Optional[User] = Depends(get_current_user_optional),
    post_service: PostService = Depends(get_post_service)
):
    """Registrar una vista con deduplicación por visitante"""
    client_host = request.client.host if request.client else None
    counted = post_service.record_view(post_id, visitor_key(current_user, client_host))

    if not counted:
        return {"success": True, "message": "View already counted recently"}
    return {"success": True}

@router.post("/{post_id}/like", response_model=LikeResult)
async def toggle_like(
    post_id: int,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Dar o quitar like a un post"""
    return post_service.toggle_like(post_id, current_user)

@router.put("/{post_id}/publish")
async def publish_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Publicar un borrador"""
    post_service.publish_post(post_id, current_user)
    return {"success": True, "message": "Post published successfully"}
