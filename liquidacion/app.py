import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from liquidacion.infrastructure import get_indicator_repository
from liquidacion.routes import indicators, payroll

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _cors_origins() -> list[str]:
    configured = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in configured.split(",") if origin.strip()]
    return origins or list(DEFAULT_CORS_ORIGINS)


def create_app() -> FastAPI:
    _configure_logging()
    app = FastAPI(title="Liquidación de Sueldos API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (payroll.router, indicators.router):
        app.include_router(router, prefix="/api")

    @app.get("/api/health", tags=["health"])
    async def health() -> dict:
        """Report liveness and how many indicator periods are loaded."""
        return {"status": "ok", "indicator_periods": len(get_indicator_repository().list_periods())}

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        return JSONResponse({"service": "liquidacion", "docs": "/docs", "health": "/api/health"})

    return app


app = create_app()
