#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Web Server - REST API for Novel Translator.

Thin orchestration shell: app creation, logging, exception handlers,
router includes.

Usage:
    uvicorn novel_api.main:app --host 127.0.0.1 --port 8000
"""

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from novel_config.logging_config import get_logger, setup_logging
from novel_config.settings import settings

setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)

from novel_core.glossary.exceptions import GlossaryError
from novel_api.glossary_router import router as glossary_router
from novel_api.prompt_router import router as prompt_router

start_time = time.time()

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Novel Translator API",
    description="Glossary matching and prompt assembly for long-form translation projects",
    version="1.0.0"
)


@app.exception_handler(GlossaryError)
async def glossary_error_handler(request: Request, exc: GlossaryError):
    """Fallback for glossary errors a route did not translate itself."""
    logger.error(f"Unhandled glossary error on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.include_router(glossary_router)
app.include_router(prompt_router)


@app.get("/health")
async def health():
    """Liveness probe."""
    return {
        "status": "healthy",
        "version": app.version,
        "uptime_seconds": round(time.time() - start_time, 3),
        "timestamp": time.time(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
