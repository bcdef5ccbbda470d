from fastapi import APIRouter

from medtrack.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {"status": "healthy", "service": "medtrack-api", "version": settings.app_version}


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {"message": "Welcome to MedTrack API", "docs": "/docs", "health": "/health"}
