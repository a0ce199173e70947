"""Health check endpoint."""

from datetime import datetime

from fastapi import APIRouter

from workhub import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat(),
    }
