"""
FastAPI application factory for the QR scanner.

Routes:
- /api/* -> REST API over the running scan session

The session is passed in explicitly and kept on ``app.state``; there is no
module-level application instance.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runtime.context import ScanSession
from .routes import api


def create_app(session: ScanSession) -> FastAPI:
    """Create the FastAPI app bound to one scan session."""
    app = FastAPI(
        title="QR Identity Scanner",
        version="0.1.0",
        description="Camera QR scanning with deduplicated identity records",
    )
    app.state.session = session

    # CORS for a locally served frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")

    return app
