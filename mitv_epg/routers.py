from pathlib import Path
from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
import logging

from mitv_epg.config import settings
from mitv_epg.services.grab_service import grab_and_write, grab_in_progress
from mitv_epg.services.scheduler_service import epg_scheduler


logger = logging.getLogger(__name__)

main_router = APIRouter()

@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    next_run = epg_scheduler.get_next_run_time()

    return {
        "service": "mi.tv EPG Grabber",
        "version": "0.1.0",
        "next_scheduled_grab": next_run.isoformat() if next_run else None,
        "endpoints": {
            "grab": "/grab - Manually trigger a listing grab (POST)",
            "epg": "/epg.xml - Last generated XMLTV document",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check() -> dict:
    """Health check endpoint"""
    next_run = epg_scheduler.get_next_run_time()
    return {
        "status": "ok",
        "scheduler_running": epg_scheduler.scheduler.running if epg_scheduler.scheduler else False,
        "grab_in_progress": grab_in_progress(),
        "next_grab": next_run.isoformat() if next_run else None
    }


@main_router.post("/grab")
async def trigger_grab() -> dict:
    """
    Manually trigger a listing grab

    This will fetch, normalize and write the XMLTV document
    """
    logger.info("Manual listing grab triggered via API")
    result = await grab_and_write()

    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])

    return result


@main_router.get("/epg.xml")
async def get_epg_file() -> FileResponse:
    """Serve the most recently generated XMLTV document"""
    path = Path(settings.output_path)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="No EPG has been generated yet")

    return FileResponse(path, media_type="application/xml", filename=path.name)
