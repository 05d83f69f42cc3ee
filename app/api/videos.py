"""
Gallery endpoints.

Lists and streams generated videos (output folder) and idle videos
(screensaver folder) for the browser player.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from loguru import logger

from app.models.schemas import MediaFileOut, OperationStatus
from app.services import PhotoboothServices, get_services
from app.utils.helpers import get_mime_type

router = APIRouter()


@router.get("/videos", response_model=List[MediaFileOut])
async def list_videos(services: PhotoboothServices = Depends(get_services)):
    """Generated videos, newest first."""
    return [video.as_json_ready() for video in services.storage.list_output_videos()]


@router.get("/screensaver", response_model=List[MediaFileOut])
async def list_screensaver_videos(services: PhotoboothServices = Depends(get_services)):
    """Videos looped while no new video is available."""
    return [video.as_json_ready() for video in services.storage.list_screensaver_videos()]


@router.get("/video/{file_name}")
async def stream_video(
    file_name: str,
    download: bool = False,
    services: PhotoboothServices = Depends(get_services),
):
    """
    Stream a video from the output folder, falling back to the screensaver folder.

    Args:
        file_name: Video file name
        download: If True, ask the browser to save the file
    """
    path = services.storage.resolve_video(file_name)
    if path is None:
        logger.warning(f"Video not found: {file_name}")
        raise HTTPException(status_code=404, detail="Video not found")

    return FileResponse(
        path,
        media_type=get_mime_type(path.name),
        filename=path.name if download else None,
    )


@router.delete("/video/{video_id}", response_model=OperationStatus)
async def delete_video(video_id: str, services: PhotoboothServices = Depends(get_services)):
    """Delete a video from the output or screensaver folder."""
    try:
        deleted = services.storage.delete_video(video_id)
    except OSError as e:
        logger.error(f"Error deleting video {video_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete video")

    if not deleted:
        raise HTTPException(status_code=404, detail="Video not found")

    return OperationStatus(success=True, message="Video deleted successfully")
