"""FastAPI application for the AI Storybook service."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .auth.routes import router as auth_router
from .errors import register_exception_handlers
from .logging import configure_logging
from .routes import cache, catalog, images, payment, photos, prompts, stories, subscription

configure_logging(json_format=config.LOG_JSON, level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup: Initialize database (only if DATABASE_URL is configured)
    if config.DATABASE_URL:
        from .database.db import get_db, init_db
        from .database.repository import UserRepository

        await init_db()
        logger.info("Database initialized")

        async with get_db() as session:
            reset = await UserRepository(session).reset_stale_usage(datetime.now(timezone.utc))
        if reset:
            logger.info(f"Reset monthly story usage for {reset} users")
    else:
        logger.warning("DATABASE_URL not set - database not initialized")

    if config.TEST_MODE:
        logger.warning("TEST_MODE is on - story limits are not enforced")

    yield


app = FastAPI(
    title="AI Storybook API",
    description="""
Personalized children's storybooks with AI-written text and illustrations.

## Features
- **Stories**: Theme-based stories written for a child's name, age and interests
- **Photo analysis**: Character descriptions from a photo with OpenAI, Claude, Gemini or LLaVA
- **Illustrations**: DALL-E 3 page images with consistent characters
- **Billing**: Razorpay subscriptions with monthly story allowances, print orders and PDF export

## Workflow
1. POST `/api/auth/signup` or `/api/auth/login` for a token
2. POST `/api/ai/generate-story` to write and save a story
3. POST `/api/ai/generate-images` and PATCH `/api/stories/{id}/images` to illustrate it
4. GET `/api/stories/{id}/pdf` to download the book
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth_router)
app.include_router(stories.router)
app.include_router(photos.router)
app.include_router(images.router)
app.include_router(catalog.router)
app.include_router(subscription.router)
app.include_router(payment.router)
app.include_router(prompts.router)
app.include_router(cache.router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
