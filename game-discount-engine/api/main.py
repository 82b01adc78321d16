"""
Game Discount Engine API - Main Application.

FastAPI application with CORS enabled for the storefront frontend.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.dependencies import shutdown_services
from repositories.settings import load_settings

logging.basicConfig(
    level=load_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cancel every running game clock before the loop goes away
    shutdown_services()


# Create FastAPI application
app = FastAPI(
    title="Game Discount Engine API",
    description="Mini-game sessions, earned discounts and cart totals for the storefront",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins to the storefront domain in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "game-discount-engine-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Game Discount Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import cart, games  # noqa: E402

app.include_router(cart.router, prefix="/api/v1", tags=["Cart"])
app.include_router(games.router, prefix="/api/v1", tags=["Games"])
