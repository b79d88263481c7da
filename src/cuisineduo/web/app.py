"""
CuisineDuo Web API - FastAPI application.

Every route lives under /api and authenticates with a Supabase access
token. Errors are rendered as {"error": "<code>"}.
"""

import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from cuisineduo import __version__
from cuisineduo.config import settings
from cuisineduo.llm.prompt_logger import enable_prompt_logging, is_prompt_logging_enabled
from cuisineduo.web.chat_routes import router as chat_router
from cuisineduo.web.errors import install_error_handlers
from cuisineduo.web.inventory_routes import router as inventory_router
from cuisineduo.web.push_routes import router as push_router
from cuisineduo.web.recipe_routes import router as recipe_router
from cuisineduo.web.swipe_routes import router as swipe_router

logger = logging.getLogger(__name__)

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def create_app() -> FastAPI:
    app = FastAPI(title="CuisineDuo", version=__version__)

    @app.on_event("startup")
    async def startup_event():
        """Log configuration on startup."""
        if settings.cuisineduo_log_prompts:
            enable_prompt_logging(True)
        logger.info(f"CuisineDuo starting up ({settings.cuisineduo_env})...")
        logger.info(f"  Prompt file logging: {is_prompt_logging_enabled()}")
        logger.info(f"  AI call audit (ai_logs): {settings.cuisineduo_log_to_db}")
        logger.info(f"  Web push: {'enabled' if settings.push_enabled else 'disabled (no VAPID keys)'}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Registered last so it wraps CORS: any OPTIONS gets 200 with no body
    @app.middleware("http")
    async def answer_options(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=PREFLIGHT_HEADERS)
        return await call_next(request)

    install_error_handlers(app)

    app.include_router(inventory_router, prefix="/api")
    app.include_router(recipe_router, prefix="/api")
    app.include_router(swipe_router, prefix="/api")
    app.include_router(chat_router, prefix="/api")
    app.include_router(push_router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
