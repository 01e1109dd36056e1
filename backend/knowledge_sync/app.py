"""FastAPI application setup for Knowledge Sync."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from knowledge_sync.api.dependencies import (
    get_app_settings,
    get_database,
    get_orchestrator,
    get_propagator,
    get_sessions,
)
from knowledge_sync.api.routes_admin import router as admin_router
from knowledge_sync.api.routes_documents import router as documents_router
from knowledge_sync.api.routes_sync import router as sync_router
from knowledge_sync.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title="Knowledge Sync",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:3000",
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync_router, prefix="/connections", tags=["sync"])
app.include_router(documents_router, prefix="/connections", tags=["documents"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_sessions()
    get_orchestrator()
    get_propagator()


@app.on_event("shutdown")
async def shutdown() -> None:
    """Stop running sync tasks and release the database."""
    await get_orchestrator().shutdown()
    get_database().close()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
