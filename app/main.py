"""
Pastebin Lite - Main FastAPI application.
"""
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from app.config import settings
from app.exceptions import BackendUnavailable, PasteAccessError, PasteValidationError
from app.database import InMemoryBackend
from app.models import ErrorResponse
from app.routes import health, pastes
from app.store import get_store

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CREATE_PAGE = Path(__file__).parent / "templates" / "create.html"

# Create FastAPI app
app = FastAPI(
    title="Pastebin Lite",
    description="A lightweight Pastebin-like application for sharing text",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include route modules
app.include_router(health.router)
app.include_router(pastes.router)


@app.exception_handler(PasteValidationError)
async def validation_error_handler(request: Request, exc: PasteValidationError):
    logger.warning(f"Rejected paste: {exc.message}")
    return JSONResponse(status_code=400, content=ErrorResponse(error=exc.message).model_dump())


@app.exception_handler(PasteAccessError)
async def access_error_handler(request: Request, exc: PasteAccessError):
    return JSONResponse(status_code=404, content=ErrorResponse(error=exc.message).model_dump())


@app.exception_handler(BackendUnavailable)
async def backend_error_handler(request: Request, exc: BackendUnavailable):
    logger.error(f"Storage failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=ErrorResponse(error=BackendUnavailable.message).model_dump())


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    logger.info("Pastebin Lite application starting...")

    store = app.dependency_overrides.get(get_store, get_store)()
    logger.info(f"DATABASE: using {store.backend.name} storage")
    if isinstance(store.backend, InMemoryBackend):
        logger.warning("Data will NOT persist across server restarts!")
    if settings.TEST_MODE:
        logger.warning("TEST_MODE enabled: x-test-now-ms header overrides fetch time")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    logger.info("Pastebin Lite application shutting down...")


@app.get("/", response_class=FileResponse)
async def root():
    """Serve the create paste HTML page."""
    return FileResponse(CREATE_PAGE, media_type="text/html")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
