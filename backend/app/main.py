"""Course Tutor — FastAPI Application Entry Point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.middleware.rate_limit import limiter
from app.routers import course_chat, content
from app.database import init_db
from app.services.ai_client import AIClient


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="Course Tutor",
    description="Course-scoped question answering grounded in instructor materials.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# The AI capability is built once per process and injected via app.dependencies.
app.state.ai = AIClient(settings)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(course_chat.router)
app.include_router(content.router)


@app.on_event("startup")
async def on_startup():
    """Create tables and report which AI provider is active."""
    init_db()

    provider = app.state.ai.provider_name()
    if provider == "none":
        logger.warning(
            "AI NOT CONFIGURED: course chat will answer with a fallback message. "
            "Set OCI_CONFIG_FILE, OCI_CONFIG_PROFILE, ORACLE_GENAI_COMPARTMENT_ID "
            "and ORACLE_GENAI_MODEL (or ANTHROPIC_API_KEY) in backend/.env, "
            "then visit /api/health/ai to verify."
        )
    else:
        logger.info("AI provider: %s (embeddings %s)", provider,
                    "available" if app.state.ai.can_embed else "unavailable")


@app.get("/")
def root():
    return {
        "name": "Course Tutor API",
        "version": "1.0.0",
        "docs": "/docs",
        "ai_provider": app.state.ai.provider_name(),
    }


@app.get("/health")
def health():
    return {"status": "ok", "ai_provider": app.state.ai.provider_name()}


@app.get("/api/health/ai")
async def health_ai():
    """Live connectivity test for the configured AI provider.

    Returns:
        provider: which AI is active
        status:   "ok" | "error" | "unconfigured"
        test_reply / error: result of a tiny test call
    """
    return await app.state.ai.health_check()
