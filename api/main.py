"""
FastAPI application entrypoint.
"""
import logging
from fastapi import FastAPI
from api.routes import router, settings

logging.basicConfig(level=settings.LOG_LEVEL)
app = FastAPI(title="Speech Clarity Analysis API", version="1.0.0")
app.include_router(router)

@app.get("/health")
def health() -> dict:
    """
    Health check endpoint.

    Returns:
        dict: Simple status payload.
    """
    return {"status": "ok"}
