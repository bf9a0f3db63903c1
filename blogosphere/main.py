from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException
import asyncio
import logging
import os
from urllib.parse import urlparse, urlunparse

from blogosphere.core.config import settings, FRONTEND_ORIGINS
from blogosphere.core.exceptions import BlogosphereError, RateLimited
from blogosphere.core.middleware import SecurityHeadersMiddleware
from blogosphere.core.rate_limit import GLOBAL_LIMIT_MESSAGE, limiter, retry_after_seconds
from blogosphere.core.time import utcnow
from blogosphere.ai.routes import router as ai_router
from blogosphere.db.init_db import init_db
from blogosphere.db.session import SessionLocal
from blogosphere.posts.routes import router as posts_router
from blogosphere.users.routes import router as users_router

logger = logging.getLogger("uvicorn.error")

app = FastAPI(
    title="Blogosphere API",
    description="API de blogs con posts, usuarios y asistencia de IA",
    version="1.0.0"
)

# Rate limiting (por IP en toda la API, global en los endpoints de IA)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Compresión y cabeceras de seguridad
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users_router, prefix="/api/users", tags=["users"])
app.include_router(posts_router, prefix="/api/posts", tags=["posts"])
app.include_router(ai_router, prefix="/api/ai", tags=["ai"])


# --- Manejo de errores ---

def _error_response(exc: BlogosphereError) -> JSONResponse:
    content = {"success": False, "message": exc.message, "detail": exc.message}
    headers = None
    if isinstance(exc, RateLimited):
        content["retryAfter"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(BlogosphereError)
async def blogosphere_error_handler(request: Request, exc: BlogosphereError):
    return _error_response(exc)


# Síncrono: SlowAPIMiddleware invoca este handler sin await
@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    message = exc.detail if exc.limit.error_message else GLOBAL_LIMIT_MESSAGE
    retry_after = retry_after_seconds(request)
    logger.warning(f"Rate limit exceeded on {request.url.path}: {exc.limit.limit}")
    return _error_response(RateLimited(retry_after=retry_after, message=message))


@app.exception_handler(OperationalError)
async def database_error_handler(request: Request, exc: OperationalError):
    logger.error(f"Database error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"success": False, "error": "Database service unavailable"}
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Something went wrong!",
            "message": str(exc) if settings.is_development else "Internal server error"
        }
    )


# --- Arranque ---

def _mask_db_url(url: str) -> str:
    try:
        u = urlparse(url)
        netloc = u.netloc
        if "@" in netloc:
            creds, host = netloc.split("@", 1)
            user = creds.split(":", 1)[0] if ":" in creds else creds
            netloc = f"{user}:***@{host}"
        return urlunparse(u._replace(netloc=netloc))
    except ValueError:
        return "unknown"


def _run_db_migrations() -> None:
    """Run Alembic migrations to head using Alembic API.
    This runs in a background thread so startup/healthcheck aren't blocked.
    """
    try:
        from alembic import command
        from alembic.config import Config
        # alembic.ini está en la raíz del proyecto (un nivel sobre blogosphere/)
        project_root = os.path.dirname(os.path.dirname(__file__))
        alembic_ini = os.path.join(project_root, "alembic.ini")

        cfg = Config(alembic_ini)
        cfg.set_main_option("script_location", os.path.join(project_root, "migrations"))
        cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
        cfg.attributes["configure_logger"] = False

        logger.info("[migrations] Running alembic upgrade head")
        command.upgrade(cfg, "head")
        logger.info("[migrations] Alembic upgrade completed")
    except Exception as e:
        logger.error(f"[migrations] Alembic upgrade failed: {e}")


@app.on_event("startup")
async def on_startup():
    # Log mínimo para verificar la URL sin filtrar secretos
    logger.info(f"[startup] Using DATABASE_URL: {_mask_db_url(settings.DATABASE_URL)}")
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        # Migraciones en segundo plano para que el arranque sea rápido
        asyncio.create_task(asyncio.to_thread(_run_db_migrations))
    else:
        init_db()


@app.get("/")
async def root():
    return {"message": "Blogosphere API"}

@app.get("/health")
async def health_check():
    return {
        "status": "OK",
        "message": "Blogosphere server is running",
        "timestamp": utcnow().isoformat()
    }

@app.get("/api/health/db")
async def database_health_check():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except OperationalError as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ERROR",
                "message": "Database connection failed",
                "timestamp": utcnow().isoformat()
            }
        )
    finally:
        db.close()

    return {
        "status": "OK",
        "message": "Database connection successful",
        "timestamp": utcnow().isoformat()
    }
