"""
Auftrag-Core - FastAPI Backend
Kommissionierung, Kontrolle und Preisberechnung für Großhandelsaufträge
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auftrag_core.config import get_settings
from auftrag_core.core.exceptions import AuftragError
from auftrag_core.database import engine, Base
from auftrag_core.api.v1 import orders, surcharges

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup und Shutdown Events"""
    # Startup: Tabellen erstellen (für Entwicklung)
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.app_name} {settings.app_version} gestartet")
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Auftrag-Core API

    Workflow-Kern für Großhandelsaufträge.

    ### Features
    - **Kommissionierung**: Übernahme, Positionserfassung mit Leergut, Abschluss
    - **Kontrolle**: Übernahme und Prüfung fertig kommissionierter Aufträge
    - **Preise**: Gewichtsberechnung je Einheit, Kundenaufpreise

    ### Authentifizierung
    Bearer Token via Keycloak
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check
@app.get("/health", tags=["System"])
async def health_check():
    """
    Systemstatus prüfen.
    Wird von Docker für Health Checks verwendet.
    """
    return {"status": "healthy", "version": settings.app_version}


@app.get("/", tags=["System"])
async def root():
    """API Root - Zeigt Willkommensnachricht"""
    return {
        "message": "Willkommen beim Auftrag-Core",
        "version": settings.app_version,
        "docs": "/docs",
    }


# API Router einbinden
app.include_router(orders.router, prefix="/api/v1")
app.include_router(surcharges.router, prefix="/api/v1")


# Exception Handler
@app.exception_handler(AuftragError)
async def auftrag_error_handler(request: Request, exc: AuftragError):
    """Fachliche Fehler mit Art und Meldung"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Globaler Exception Handler"""
    logger.exception(f"Unbehandelter Fehler bei {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Ein interner Fehler ist aufgetreten.",
            "error": str(exc) if settings.debug else None
        }
    )
