import logging
import uuid
import cloudinary
import cloudinary.uploader
import httpx
from resumate.services.config import settings

logger = logging.getLogger("uvicorn.error")


class StorageError(RuntimeError):
    pass


def init_cloudinary():
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True,
    )


class CloudinaryStorage:
    """Resume files and previews live in Cloudinary; downloads go over plain HTTPS."""

    def __init__(self, timeout: float = settings.STORAGE_TIMEOUT):
        self.timeout = timeout

    def put(self, data: bytes, owner_id: str, filename: str, resource_type: str = "auto") -> str:
        public_id = f"resumes/{owner_id}/{uuid.uuid4()}_{filename}"
        try:
            result = cloudinary.uploader.upload(
                data,
                resource_type=resource_type,
                public_id=public_id,
                type="upload",
            )
        except Exception as e:
            logger.exception("Cloudinary upload failed")
            raise StorageError(f"Cloudinary upload failed: {e}")
        url = result["secure_url"]
        logger.info("Uploaded %s to Cloudinary: %s", filename, url)
        return url

    def get(self, url: str) -> bytes:
        try:
            response = httpx.get(url, timeout=self.timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Fetching %s returned %s", url, e.response.status_code)
            raise StorageError(f"Failed to fetch file: {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error("Fetching %s failed: %r", url, e)
            raise StorageError(f"Failed to fetch file: {e}")
        return response.content
