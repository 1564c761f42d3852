"""Image upload to Cloudinary."""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.dependencies import get_storage
from app.services.storage import CloudinaryStorage, StorageError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


@router.post("/upload")
def upload(
    file: UploadFile | None = File(default=None),
    storage: CloudinaryStorage = Depends(get_storage),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    data = file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="No file provided")
    try:
        result = storage.upload(data, file.filename or "upload", file.content_type)
    except StorageError as e:
        logger.error("Upload error: %s", e)
        raise HTTPException(status_code=500, detail="Upload failed")
    return {"url": result["url"], "public_id": result["public_id"]}
