from typing import Optional

from fastapi import status


class BlogosphereError(Exception):
    """Error de dominio con su código HTTP asociado"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(BlogosphereError):
    """Campo ausente o inválido, o valor fuera de la enumeración"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(BlogosphereError):
    """Token ausente/inválido o credenciales incorrectas"""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class Forbidden(BlogosphereError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied - insufficient permissions"


class NotFound(BlogosphereError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class PostNotFound(NotFound):
    default_message = "Post not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class Conflict(BlogosphereError):
    """Email o username duplicado.

    Se responde con 400, igual que el resto de errores de registro.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class EmailAlreadyRegistered(Conflict):
    default_message = "User already exists with this email"


class UsernameTaken(Conflict):
    default_message = "Username already taken"


class RateLimited(BlogosphereError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later."

    def __init__(self, retry_after: int = 1, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message)


class ServiceUnavailable(BlogosphereError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable"


class UpstreamError(BlogosphereError):
    """El servicio de completado falló o devolvió un error"""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service error"
