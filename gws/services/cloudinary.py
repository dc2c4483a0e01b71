import hashlib
import logging
import time
from typing import Dict, Optional

import httpx

from gws.core.config import Settings
from gws.core.exceptions import ConfigurationError
from gws.schemas.collaborators import UploadedAsset
from gws.services.collaborators import AssetStore
from gws.services.http import send_request

logger = logging.getLogger(__name__)


def sign_params(params: Dict[str, str], api_secret: str) -> str:
    """Cloudinary signature: sha1 of sorted 'k=v' pairs joined by '&', then the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


class CloudinaryAssetStore(AssetStore):
    collaborator = "Cloudinary"

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    async def upload(self, data: bytes, folder: str, filename: Optional[str] = None) -> UploadedAsset:
        s = self.settings
        if not (s.CLOUDINARY_CLOUD_NAME and s.CLOUDINARY_API_KEY and s.CLOUDINARY_API_SECRET):
            raise ConfigurationError("Cloudinary credentials are not configured")

        params = {"folder": folder, "timestamp": str(int(time.time()))}
        if filename:
            params["public_id"] = f"{params['timestamp']}-{filename.rsplit('.', 1)[0]}"
        form = dict(params, api_key=s.CLOUDINARY_API_KEY, signature=sign_params(params, s.CLOUDINARY_API_SECRET))

        result = await send_request(
            self.client, self.collaborator, 'POST',
            f"{s.CLOUDINARY_API_URL}/{s.CLOUDINARY_CLOUD_NAME}/auto/upload",
            data=form, files={"file": (filename or "upload", data)},
        )
        logger.info(f"✓ Uploaded to Cloudinary: {result['secure_url']}")
        return UploadedAsset(secure_url=result['secure_url'], public_id=result.get('public_id'))

    async def aclose(self):
        await self.client.aclose()
