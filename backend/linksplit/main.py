"""Main FastAPI application."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from linksplit.config import get_settings
from linksplit.middleware.logging import LoggingMiddleware, get_logger
from linksplit.api import editor, health, links, redirect
from linksplit.database import engine, Base
from linksplit.models import Link  # noqa: F401  registers the table

settings = get_settings()
logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    Base.metadata.create_all(bind=engine)
    logger.info("database_tables_ready")

    yield  # App runs here

    logger.info("shutting_down", service=settings.app_name)

# Create FastAPI app
app = FastAPI(
    title="LinkSplit",
    description="Short links that split traffic across destination URLs for A/B testing",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# CORS middleware - Allow the link editor frontend
allowed_origins = [
    "http://localhost:5173",  # Local development
    "http://localhost:3000",  # Alternative local port
    settings.frontend_url,     # Production frontend
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-ID"]
)

# Logging middleware
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(links.router, tags=["links"])
app.include_router(editor.router, tags=["editor"])
app.include_router(redirect.router, tags=["redirect"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "disabled",
        "endpoints": {
            "health": "/health",
            "links": "POST /links",
            "tests": "PUT /links/{key}/tests",
            "redirect": "GET /r/{key}"
        }
    }


# uvicorn linksplit.main:app --reload
