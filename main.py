from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Internal imports
from config import config
from data.database import create_tables
from api.assignment_routes import assignment_router
from api.config_routes import config_router
from api.events_routes import events_router
from api.experiment_routes import experiment_router
from api.render_routes import render_router

import contextlib
import logging
import middleware

logger = logging.getLogger(__name__)

SDK_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-api-key"]


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles startup and shutdown events for the application.
    Code before 'yield' runs on startup.
    Code after 'yield' runs on shutdown.
    """
    logger.info("Application starting up: Initializing database schema...")
    create_tables()
    logger.info("Database tables initialized successfully.")

    yield

    logger.info("Application shutting down: Closing resources...")

# --- FastAPI App Initialization ---
app = FastAPI(
    lifespan=lifespan,
    title="Onboarding Flow Experiments API",
    version="1.0.0",
    description="Server-driven onboarding flows: config delivery, sticky variant assignment, event ingestion and screen preview."
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_allow_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=SDK_HEADERS,
)
app.add_middleware(middleware.RequestIDMiddleware)

app.include_router(config_router)
app.include_router(assignment_router)
app.include_router(events_router)
app.include_router(experiment_router)
app.include_router(render_router)


# --- Error payloads ---
# Every error reaches the SDK as {"error": "..."}

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = "Method not allowed" if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED else exc.detail
    return JSONResponse(content={"error": detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info("%s %s rejected: %s", request.method, request.url.path, errors)
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(content={"error": message}, status_code=status.HTTP_400_BAD_REQUEST)

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse(content={"error": "Internal server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# --- API Endpoints ---

@app.get("/health")
def health_check():
    return JSONResponse(content={"status": "healthy"}, status_code=200)
