from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Boolean, JSON, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

from blogosphere.core.time import utcnow

Base = declarative_base()

POST_CATEGORIES = ("daily-news", "stock-market", "ai", "technology", "business")
POST_STATUSES = ("draft", "published")
USER_ROLES = ("user", "admin")


def default_profile() -> dict:
    return {"bio": "", "avatar": "", "location": "", "website": ""}


def default_user_settings() -> dict:
    return {"emailNotifications": True, "publicProfile": True}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)  # siempre en minúsculas
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), default="")
    last_name = Column(String(100), default="")
    username = Column(String(50), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, default=True, nullable=False)
    profile = Column(JSON, default=default_profile)
    settings = Column(JSON, default=default_user_settings)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login_at = Column(DateTime)

    # Relaciones
    posts = relationship("Post", back_populates="author")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        if self.username:
            return self.username
        if self.email:
            return self.email.split("@")[0]
        return "Anonymous"


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)  # Resumen/descripción corta
    tags = Column(JSON, default=list)
    category = Column(String(30), nullable=False, default="technology")
    status = Column(String(20), nullable=False, default="draft", index=True)
    # Flag booleano heredado de documentos antiguos; puede estar a NULL
    published = Column(Boolean)
    image_url = Column(String(500))

    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    author_name = Column(String(255))
    author_email = Column(String(255))

    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    # visitorId -> último timestamp visto (ms)
    recent_views = Column(JSON, default=dict)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)
    published_at = Column(DateTime)

    # Relaciones
    author = relationship("User", back_populates="posts")


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_likes_post_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Sin FK: al borrar un post sus likes quedan huérfanos
    post_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
