"""File upload handlers"""
import os
import logging
from typing import Optional

from fastapi import Request, HTTPException, UploadFile

from ..storage.s3_service import MediaDeleteError, get_s3_service
from .errors import ok, server_error

logger = logging.getLogger(__name__)

MAX_AUDIO_BYTES = 50 * 1024 * 1024
MAX_IMAGE_BYTES = 5 * 1024 * 1024

AUDIO_EXTENSIONS = {".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a"}
IMAGE_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}

def is_allowed_media(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Audio or image, judged by mime type or file extension"""
    content_type = (content_type or "").lower()
    if content_type.startswith("audio/") or content_type.startswith("image/"):
        return True
    extension = os.path.splitext(filename or "")[1].lower()
    return extension in AUDIO_EXTENSIONS or extension in IMAGE_EXTENSIONS

async def read_upload(file: Optional[UploadFile], max_bytes: int) -> bytes:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    if not is_allowed_media(file.filename, file.content_type):
        raise HTTPException(status_code=400, detail="Invalid file type. Only audio and image files are allowed.")

    # Read one byte past the limit to detect oversize files without buffering them whole
    file_data = await file.read(max_bytes + 1)
    if len(file_data) > max_bytes:
        raise HTTPException(status_code=400, detail="File too large. Please upload a smaller file.")
    return file_data

async def upload_track_handler(request: Request, file: Optional[UploadFile], duration: Optional[float] = None):
    """Upload an audio file to storage"""
    file_data = await read_upload(file, MAX_AUDIO_BYTES)

    try:
        result = get_s3_service().upload_media(file_data, "audio", metadata={"duration": duration})
        logger.info(f"✅ Uploaded track file: {result['public_id']} ({result['bytes']} bytes)")
        return ok(result)

    except Exception as e:
        logger.error(f"❌ Track upload error: {e}")
        raise server_error("Failed to upload track file")

async def upload_image_handler(request: Request, file: Optional[UploadFile], width: Optional[int] = None, height: Optional[int] = None):
    """Upload an image file to storage"""
    file_data = await read_upload(file, MAX_IMAGE_BYTES)

    try:
        result = get_s3_service().upload_media(file_data, "image", metadata={"width": width, "height": height})
        logger.info(f"✅ Uploaded image file: {result['public_id']} ({result['bytes']} bytes)")
        return ok(result)

    except Exception as e:
        logger.error(f"❌ Image upload error: {e}")
        raise server_error("Failed to upload image file")

async def delete_file_handler(request: Request, public_id: str):
    if not public_id:
        raise HTTPException(status_code=400, detail="Public ID is required")

    try:
        get_s3_service().delete_media(public_id)
        return ok(message="File deleted successfully")

    except MediaDeleteError as e:
        logger.warning(f"⚠️  Storage refused delete of {public_id}: {e}")
        raise HTTPException(status_code=400, detail="Failed to delete file from storage")
    except Exception as e:
        logger.error(f"❌ Delete file error: {e}")
        raise server_error("Failed to delete file")
