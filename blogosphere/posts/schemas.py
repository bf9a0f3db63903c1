from datetime import datetime
from pydantic import Field
from typing import List, Optional

from blogosphere.core.schemas import CamelModel

class PostCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    tags: List[str] = []
    # Categoría y estado se validan en el servicio (errores 400)
    category: str = "technology"
    status: str = "draft"
    image_url: Optional[str] = None

class PostUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None
    status: Optional[str] = None
    # Clientes antiguos envían un booleano en lugar de status
    published: Optional[bool] = None
    image_url: Optional[str] = None

class PostResponse(CamelModel):
    id: int
    title: str
    content: str
    excerpt: Optional[str] = None
    tags: List[str] = []
    category: str
    status: str
    author_id: int
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    views: int = 0
    likes: int = 0
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None

class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_posts: int
    has_next_page: bool
    has_prev_page: bool

class PostsPage(CamelModel):
    posts: List[PostResponse]
    pagination: Pagination

class LikeResult(CamelModel):
    liked: bool
    likes: int
    message: str
