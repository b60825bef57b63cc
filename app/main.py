# En main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.exceptions import CheckinAppError, ServiceUnavailableError
from app.core.logging_config import setup_logging
from app.database import init_db
from app.dependencies import get_lark_client
from app.routers import checkin, email, events, participants, qr

setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORE_BACKEND == "sql":
        init_db()
    logger.info(f"API iniciada (store={settings.STORE_BACKEND}, mail={settings.MAIL_TRANSPORT})")
    yield
    # Cierra el pool de conexiones del cliente Lark si se llegó a crear
    if get_lark_client.cache_info().currsize:
        get_lark_client().close()


app = FastAPI(
    lifespan=lifespan,
    title="Event Check-in API",
    description="API de check-in por QR para eventos: participantes, correos y asistencia",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configuración CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)


@app.exception_handler(CheckinAppError)
def checkin_app_error_handler(request: Request, exc: CheckinAppError):
    if exc.status_code >= 500:
        logger.error(f"❌ {type(exc).__name__} en {request.url.path}: {exc.detail}")
    content = {"detail": exc.detail}
    if isinstance(exc, ServiceUnavailableError):
        content["retryable"] = exc.retryable
    return JSONResponse(status_code=exc.status_code, content=content)


# Routers
app.include_router(events.router, prefix="/events", tags=["Eventos"])
app.include_router(participants.router, prefix="/participants", tags=["Participantes"])
app.include_router(checkin.router, prefix="/checkin", tags=["Check-in"])
app.include_router(qr.router, prefix="/qr", tags=["QR"])
app.include_router(email.router, prefix="/email", tags=["Correo"])

@app.get("/")
def read_root():
    return {
        "mensaje": "Event Check-in API funcionando correctamente",
        "version": "1.0.0"
    }

@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": "Event Check-in API",
    }
