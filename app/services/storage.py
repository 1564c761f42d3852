"""Image uploads to Cloudinary (signed REST upload)."""
import hashlib
import logging
import time

import httpx

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


def cloudinary_signature(params: dict, api_secret: str) -> str:
    """SHA-1 over the alphabetically sorted "k=v" pairs joined by '&', followed by the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


class CloudinaryStorage:
    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "hoardspace", timeout: float = 30.0):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def upload(self, data: bytes, filename: str, content_type: str | None = None) -> dict:
        """Returns {"url": secure_url, "public_id": ...}."""
        if not self.configured:
            raise StorageError("Cloudinary is not configured")
        params = {"folder": self.folder, "timestamp": int(time.time())}
        form = {**params, "api_key": self.api_key, "signature": cloudinary_signature(params, self.api_secret)}
        url = f"https://api.cloudinary.com/v1_1/{self.cloud_name}/auto/upload"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(url, data=form, files={"file": (filename, data, content_type or "application/octet-stream")})
        except httpx.HTTPError as e:
            raise StorageError(f"Cloudinary request failed: {e}") from e
        if not 200 <= r.status_code < 300:
            logger.error("[Cloudinary] Upload failed: status=%s body=%s", r.status_code, r.text[:500])
            raise StorageError(f"Cloudinary returned {r.status_code}")
        body = r.json()
        return {"url": body.get("secure_url"), "public_id": body.get("public_id")}
