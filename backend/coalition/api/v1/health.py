"""
Health check endpoints.
"""
from fastapi import APIRouter
from coalition.schemas.common import HealthResponse, MessageResponse
from coalition.core.config import settings

router = APIRouter()


@router.get("/", response_model=MessageResponse)
async def root():
    return MessageResponse(message=f"Welcome to the {settings.APP_NAME}")


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")
