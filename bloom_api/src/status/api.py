from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
import logging

from .service import status_service
from .responses import UptimeResponse, InstancesOverviewResponse


router = APIRouter(tags=["status"])

# Set up logger for API debugging
logger = logging.getLogger("bloom.api")


def get_bloom(request: Request):
    """Dependency: the running Bloom runtime attached at app creation"""
    return request.app.state.bloom


@router.get("/status", response_class=PlainTextResponse)
async def get_status(bloom=Depends(get_bloom)):
    """Plain online check"""
    return status_service.get_status_text(bloom)


@router.get("/uptime", response_model=UptimeResponse)
async def get_uptime(bloom=Depends(get_bloom)):
    """Process uptime"""
    return status_service.get_uptime(bloom)


@router.get("/instances", response_model=InstancesOverviewResponse)
async def get_instances(bloom=Depends(get_bloom)):
    """Active instance, rotation countdown and per-instance connection state"""
    overview = await status_service.get_instances(bloom)
    logger.debug(f"📊 Instances overview: active={overview.active_instance_id}")
    return overview
