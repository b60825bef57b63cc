# app/core/exceptions.py

from fastapi import status


class CheckinAppError(Exception):
    """Base de los errores de dominio; cada uno sabe su código HTTP."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationError(CheckinAppError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(CheckinAppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: str = "Recurso no encontrado"):
        super().__init__(detail)


class ConflictError(CheckinAppError):
    status_code = status.HTTP_409_CONFLICT


class ServiceUnavailableError(CheckinAppError):
    """
    Falla transitoria de una dependencia (record store, transporte de correo).

    `retryable` es False cuando la falla ocurrió durante una escritura cuyo
    resultado es desconocido: hay que volver a leer el estado antes de
    reintentar.
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, detail: str, retryable: bool = True):
        self.retryable = retryable
        super().__init__(detail)


class ConfigurationError(CheckinAppError):
    """Faltan credenciales o configuración obligatoria (correo, store)."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
