import logging
import math
from typing import List, Optional

from fastapi import Depends
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blogosphere.core.config import settings
from blogosphere.core.exceptions import Forbidden, PostNotFound, ValidationFailed
from blogosphere.core.time import now_ms, utcnow
from blogosphere.db.models import Like, Post, User, POST_CATEGORIES, POST_STATUSES
from blogosphere.db.session import get_db
from blogosphere.posts.schemas import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 150


def is_published(post: Post) -> bool:
    """Publicado según status o según el flag booleano heredado"""
    return post.status == "published" or post.published is True


def can_read(post: Post, caller: Optional[User]) -> bool:
    if is_published(post):
        return True
    if caller is None:
        return False
    return post.author_id == caller.id or caller.is_admin


def can_modify(post: Post, caller: User) -> bool:
    return post.author_id == caller.id or caller.is_admin


def visitor_key(user: Optional[User], client_host: Optional[str]) -> str:
    """Identificador para deduplicar vistas"""
    if user is not None:
        return f"user:{user.id}"
    return f"ip:{client_host or 'unknown'}"


def make_excerpt(content: str) -> str:
    return content[:EXCERPT_LENGTH] + "..."


def _validate_category(category: str) -> None:
    if category not in POST_CATEGORIES:
        raise ValidationFailed("Invalid category")


def _validate_status(status: str) -> None:
    if status not in POST_STATUSES:
        raise ValidationFailed("Invalid status")


def _newest_first(posts: List[Post]) -> List[Post]:
    return sorted(posts, key=lambda p: (p.created_at, p.id), reverse=True)


class PostService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, post_id: int) -> Post:
        post = self.db.query(Post).filter(Post.id == post_id).first()
        if not post:
            raise PostNotFound()
        return post

    def _get_for_update(self, post_id: int) -> Post:
        """Relee el post bloqueando la fila hasta el commit"""
        post = (
            self.db.query(Post)
            .filter(Post.id == post_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not post:
            raise PostNotFound()
        return post

    # --- Lectura ---

    def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        author: Optional[int] = None,
        tag: Optional[str] = None
    ) -> dict:
        """Posts publicados, paginados en memoria.

        El filtro de publicados y el de tag se aplican tras la consulta, así
        que el coste crece con el número total de posts del autor/colección.
        """
        query = self.db.query(Post).order_by(desc(Post.created_at), desc(Post.id))

        if author:
            query = query.filter(Post.author_id == author)

        fetched = query.all()

        if tag:
            fetched = [p for p in fetched if tag in (p.tags or [])]

        visible = [p for p in fetched if is_published(p)]

        offset = (page - 1) * limit
        posts = visible[offset:offset + limit]
        total = len(visible)

        return {
            "posts": posts,
            "pagination": {
                "current_page": page,
                "total_pages": math.ceil(total / limit),
                "total_posts": total,
                "has_next_page": offset + len(posts) < total,
                "has_prev_page": page > 1,
            },
        }

    def get_post(self, post_id: int, caller: Optional[User] = None) -> Post:
        """Post por ID respetando la visibilidad de borradores"""
        post = self._get(post_id)
        if not can_read(post, caller):
            raise Forbidden("Post not accessible")
        return post

    def list_user_posts(
        self,
        user_id: int,
        caller: Optional[User] = None,
        page: int = 1,
        limit: int = 10,
        include_unpublished: bool = False
    ) -> List[Post]:
        """Posts de un autor; los borradores solo para el dueño o un admin"""
        posts = (
            self.db.query(Post)
            .filter(Post.author_id == user_id)
            .order_by(desc(Post.created_at), desc(Post.id))
            .all()
        )

        show_drafts = include_unpublished and caller is not None and (
            caller.id == user_id or caller.is_admin
        )
        if not show_drafts:
            posts = [p for p in posts if is_published(p)]

        offset = (page - 1) * limit
        return posts[offset:offset + limit]

    def list_my_posts(self, caller: User) -> List[Post]:
        posts = self.db.query(Post).filter(Post.author_id == caller.id).all()
        return _newest_first(posts)

    def list_my_drafts(self, caller: User) -> List[Post]:
        posts = (
            self.db.query(Post)
            .filter(Post.author_id == caller.id, Post.status == "draft")
            .all()
        )
        return _newest_first(posts)

    # --- Escritura ---

    def create_post(self, data: PostCreate, caller: User) -> Post:
        """Crea un nuevo post del usuario actual"""
        _validate_category(data.category)
        _validate_status(data.status)

        now = utcnow()
        post = Post(
            title=data.title.strip(),
            content=data.content,
            excerpt=data.excerpt.strip() if data.excerpt else make_excerpt(data.content),
            tags=list(data.tags or []),
            category=data.category,
            status=data.status,
            author_id=caller.id,
            author_name=caller.display_name,
            author_email=caller.email,
            image_url=data.image_url,
            views=0,
            likes=0,
            recent_views={},
            created_at=now,
            updated_at=now,
            published_at=now if data.status == "published" else None,
        )
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)

        logger.info("Post %s created by user %s (%s)", post.id, caller.id, post.status)
        return post

    def update_post(self, post_id: int, data: PostUpdate, caller: User) -> Post:
        """Actualiza un post (autor o admin)"""
        post = self._get(post_id)
        if not can_modify(post, caller):
            raise Forbidden("Not authorized to update this post")

        changes = data.model_dump(exclude_unset=True)

        if changes.get("category") is not None:
            _validate_category(changes["category"])

        target_status = None
        if changes.get("status") is not None:
            _validate_status(changes["status"])
            target_status = changes["status"]
        elif changes.get("published") is not None:
            target_status = "published" if changes["published"] else "draft"

        if target_status == "draft" and is_published(post):
            raise ValidationFailed("Published posts cannot be reverted to draft")

        if changes.get("title") is not None:
            post.title = changes["title"].strip()
        if changes.get("content") is not None:
            post.content = changes["content"]
        if "excerpt" in changes:
            post.excerpt = (changes["excerpt"] or "").strip()
        if "tags" in changes:
            post.tags = list(changes["tags"] or [])
        if changes.get("category") is not None:
            post.category = changes["category"]
        if "image_url" in changes:
            post.image_url = changes["image_url"]

        now = utcnow()
        if target_status == "published" and post.status != "published":
            post.status = "published"
            post.published_at = post.published_at or now

        post.updated_at = now
        self.db.commit()
        self.db.refresh(post)

        logger.info("Post %s updated by user %s", post.id, caller.id)
        return post

    def delete_post(self, post_id: int, caller: User) -> None:
        """Elimina un post; los likes asociados no se tocan"""
        post = self._get(post_id)
        if not can_modify(post, caller):
            raise Forbidden("Not authorized to delete this post")

        self.db.delete(post)
        self.db.commit()
        logger.info("Post %s deleted by user %s", post_id, caller.id)

    def publish_post(self, post_id: int, caller: User) -> Post:
        """Publica un borrador (draft -> published, sin vuelta atrás)"""
        post = self._get(post_id)
        if post.author_id != caller.id:
            raise Forbidden("You can only publish your own posts")

        if post.status != "draft":
            raise ValidationFailed("Post is not a draft")

        now = utcnow()
        post.status = "published"
        post.published_at = now
        post.updated_at = now
        self.db.commit()
        self.db.refresh(post)

        logger.info("Post %s published by user %s", post.id, caller.id)
        return post

    # --- Contadores ---

    def record_view(self, post_id: int, visitor_id: str, now: Optional[int] = None) -> bool:
        """Cuenta una vista salvo que el visitante se haya visto hace poco.

        La comprobación previa no bloquea: dos primeras vistas simultáneas
        del mismo visitante pueden contar dos veces. El incremento y la poda
        del mapa de visitantes sí van en una única transacción.
        """
        if now is None:
            now = now_ms()

        post = self._get(post_id)
        last_seen = (post.recent_views or {}).get(visitor_id)
        if last_seen is not None and now - last_seen < settings.VIEW_DEDUPE_WINDOW_MS:
            logger.debug("View of post %s by %s already counted", post_id, visitor_id)
            return False

        cutoff = now - settings.VIEW_RETENTION_MS
        try:
            locked = self._get_for_update(post_id)
            recent_views = {
                key: ts for key, ts in (locked.recent_views or {}).items() if ts > cutoff
            }
            recent_views[visitor_id] = now

            locked.views = (locked.views or 0) + 1
            locked.recent_views = recent_views
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.debug("View of post %s counted for %s", post_id, visitor_id)
        return True

    def toggle_like(self, post_id: int, user: User) -> dict:
        """Da o quita el like del usuario en una sola transacción"""
        post = self._get_for_update(post_id)

        existing = (
            self.db.query(Like)
            .filter(Like.post_id == post_id, Like.user_id == user.id)
            .first()
        )

        if existing:
            self.db.delete(existing)
            post.likes = max((post.likes or 0) - 1, 0)
            liked = False
        else:
            self.db.add(Like(post_id=post_id, user_id=user.id, created_at=utcnow()))
            post.likes = (post.likes or 0) + 1
            liked = True

        try:
            self.db.commit()
        except IntegrityError:
            # Un like simultáneo del mismo usuario ya quedó registrado
            self.db.rollback()
            post = self._get(post_id)
            liked = True

        logger.info("User %s %s post %s", user.id, "liked" if liked else "unliked", post_id)
        return {
            "liked": liked,
            "likes": post.likes,
            "message": "Post liked successfully" if liked else "Post unliked successfully",
        }


def get_post_service(db: Session = Depends(get_db)) -> PostService:
    """Factory function para obtener una instancia del servicio de posts"""
    return PostService(db)
