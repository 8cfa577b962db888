from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import router
from app.core.config import get_settings
from app.core.logging import configure_logging


settings = get_settings()
configure_logging(settings.debug)

SERVICE_NAME = "adresse-finder"

app = FastAPI(
    title="Adresse Finder API",
    description="Finds and normalizes postal addresses of French establishments.",
    version="0.1.0",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Report that the address lookup service is up."""

    return {"status": "ok", "service": SERVICE_NAME}
