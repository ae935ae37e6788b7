import logging
from fastapi import APIRouter

logger = logging.getLogger("bloom.api")

router = APIRouter(tags=["health"])

# Health check endpoint
@router.get("/health")
async def health_check():
    """Health check endpoint"""
    logger.debug("Health check endpoint called")
    return "pong"
