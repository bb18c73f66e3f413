"""FastAPI service shell: hosts the worker pool and health endpoints."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from study_ingest.config import get_settings
from study_ingest.logging_config import configure_logging
from study_ingest.pipeline import build_pipeline


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configure logging, build the pipeline, run workers."""
    settings = get_settings()
    configure_logging(settings.log_level, json_format=settings.log_json)
    http_client = httpx.AsyncClient(follow_redirects=True)
    pipeline = build_pipeline(settings, http_client=http_client)
    app.state.settings = settings
    app.state.pipeline = pipeline
    await pipeline.worker.start()
    try:
        yield
    finally:
        await pipeline.worker.stop()
        await http_client.aclose()


app = FastAPI(
    title="Study Ingest",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Health check endpoint for the container platform and local development."""
    return {
        "status": "ok",
        "service": "study-ingest",
        "version": "0.1.0",
    }


@app.get("/health/queue")
async def queue_health(request: Request):
    """Job counts by queue state and whether the worker pool is running."""
    pipeline = request.app.state.pipeline
    return {
        "workers_running": pipeline.worker.running,
        "jobs": pipeline.queue.stats(),
    }


@app.get("/health/usage")
async def usage_health(request: Request):
    """Gemini token usage and cost per generation task since startup."""
    return request.app.state.pipeline.generator.usage.totals()
