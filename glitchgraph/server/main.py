"""
GlitchGraph API server — FastAPI app the canvas editor talks to.

Start with:
    python -m glitchgraph.server.main

Or via uvicorn directly:
    uvicorn glitchgraph.server.main:app --port 3001 --reload

Settings come from the environment / .env (see glitchgraph/config.py).
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from glitchgraph.config import configure_logging, load_settings
from glitchgraph.server.routes.graph_routes import router
from glitchgraph.server.state import graph_state

logger = logging.getLogger(__name__)

settings = load_settings()

# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(title="GlitchGraph API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")

if settings.seed_demo and len(graph_state.snapshot()) == 0:
    graph_state.seed_demo()


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run() -> None:
    import uvicorn

    configure_logging(settings.log_level)
    logger.info(f"Serving GlitchGraph API on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
