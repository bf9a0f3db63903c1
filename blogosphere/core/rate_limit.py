import math
import time

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from blogosphere.core.config import settings

GLOBAL_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."
AI_BUSY_MESSAGE = "AI service is busy. Please try again in a moment."


def _limit_string(max_requests: int, window_ms: int) -> str:
    # slowapi trabaja con segundos enteros
    seconds = max(1, window_ms // 1000)
    return f"{max_requests}/{seconds} seconds"


def default_rate_limit() -> str:
    """Límite por IP para toda la API"""
    return _limit_string(settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW_MS)


def ai_rate_limit() -> str:
    return _limit_string(settings.AI_RATE_LIMIT_MAX, settings.AI_RATE_LIMIT_WINDOW_MS)


def global_key(request: Request) -> str:
    # Un único contador para todos los clientes
    return "global"


# Los límites son callables: se leen de settings en cada petición.
# El límite por IP cuenta todas las rutas juntas
limiter = Limiter(key_func=get_remote_address, application_limits=[default_rate_limit])

# Throttle compartido por los endpoints de IA
ai_limit = limiter.shared_limit(
    ai_rate_limit,
    scope="ai",
    key_func=global_key,
    error_message=AI_BUSY_MESSAGE,
)


def retry_after_seconds(request: Request) -> int:
    """Segundos hasta que se reinicia la ventana que ha bloqueado la petición"""
    current = getattr(request.state, "view_rate_limit", None)
    if current is None:
        return 1

    item, args = current
    reset_at, _ = limiter.limiter.get_window_stats(item, *args)
    return max(1, math.ceil(reset_at - time.time()))
