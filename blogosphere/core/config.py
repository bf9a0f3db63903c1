import os
from urllib.parse import urlparse

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


def _resolve_database_url() -> str:
    """Resolve DATABASE_URL from common env var patterns.

    Priority:
    1) DATABASE_URL
    2) POSTGRES_URL
    3) Construct from PG* variables (PGHOST, PGPORT, PGUSER, PGPASSWORD, PGDATABASE)
    Fallback to a local SQLite file as last resort.
    """
    url = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL")
    if not url:
        host = os.getenv("PGHOST")
        user = os.getenv("PGUSER")
        password = os.getenv("PGPASSWORD")
        db = os.getenv("PGDATABASE")
        port = os.getenv("PGPORT", "5432")
        if all([host, user, password, db]):
            url = f"postgresql://{user}:{password}@{host}:{port}/{db}"
            sslmode = os.getenv("PGSSLMODE") or os.getenv("DB_SSLMODE")
            if sslmode:
                sep = "?" if "?" not in url else "&"
                url = f"{url}{sep}sslmode={sslmode}"
    return url or "sqlite:///./blogosphere.db"


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = _resolve_database_url()
    RUN_MIGRATIONS_ON_STARTUP: bool = True

    # JWT
    SECRET_KEY: str = Field(
        default="blogosphere-super-secret-jwt-key",
        validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET"),
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # CORS / Frontend origins (uno o varios separados por coma)
    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("FRONTEND_URL", "CLIENT_URL"),
    )

    # Environment: development | staging | production
    ENV: str = "development"

    # Límite por IP para toda la API
    RATE_LIMIT_WINDOW_MS: int = 15 * 60 * 1000
    RATE_LIMIT_MAX: int = 100

    # Conteo de vistas
    VIEW_DEDUPE_WINDOW_MS: int = 60 * 1000
    VIEW_RETENTION_MS: int = 24 * 60 * 60 * 1000

    # Servicio de completado (API compatible con OpenAI)
    AI_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("AI_API_KEY", "OPENAI_API_KEY"),
    )
    AI_BASE_URL: str = "https://integrate.api.nvidia.com/v1"
    AI_MODEL: str = "meta/llama-3.1-405b-instruct"
    AI_TIMEOUT_SECONDS: float = 60.0
    AI_RATE_LIMIT_WINDOW_MS: int = 1000
    AI_RATE_LIMIT_MAX: int = 1

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_development(self) -> bool:
        return self.ENV == "development"


settings = Settings()


def get_frontend_origins() -> list[str]:
    raw = settings.FRONTEND_URL or ""
    origins: list[str] = []
    for part in raw.split(','):
        p = part.strip()
        if not p:
            continue
        # Si se pegó accidentalmente 'FRONTEND_URL=https://dominio' dentro del valor
        if p.lower().startswith('frontend_url='):
            p = p.split('=', 1)[1].strip()
        p = p.rstrip('/')
        origins.append(p)
    # Añadir variante www si el dominio es raíz (ej: https://blogosphere.dev)
    augmented: list[str] = []
    for o in origins:
        augmented.append(o)
        host = urlparse(o).hostname or ""
        if host.count('.') == 1 and not host.startswith('www.'):
            www_variant = o.replace('://', '://www.')
            if www_variant not in origins and www_variant not in augmented:
                augmented.append(www_variant)
    # Eliminar duplicados preservando orden
    seen = set()
    result = []
    for o in augmented:
        if o not in seen:
            seen.add(o)
            result.append(o)
    return result


FRONTEND_ORIGINS = get_frontend_origins()
