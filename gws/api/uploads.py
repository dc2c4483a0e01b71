from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse
from typing import List
import logging

from gws.api.deps import get_services
from gws.core.exceptions import EntityNotFound, HubError
from gws.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["uploads"])


@router.post("/uploads/{entity_id}")
async def upload_photos(entity_id: str, photos: List[UploadFile] = File(...),
                        services: Services = Depends(get_services)):
    """Upload job photos to the Asset Store and attach their URLs to the engagement."""
    entity = await services.record_store.get_entity(entity_id)
    if entity is None:
        raise EntityNotFound(entity_id)

    folder = f"{services.settings.CLOUDINARY_FOLDER}/{entity_id}"
    urls = []
    for photo in photos:
        data = await photo.read()
        if not data:
            logger.warning(f"Skipping empty upload {photo.filename} for {entity_id}")
            continue
        try:
            asset = await services.assets.upload(data, folder, photo.filename)
        except HubError:
            logger.exception(f"Failed to upload {photo.filename} for {entity_id}")
            continue
        urls.append(asset.secure_url)

    if not urls:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": "No photos were uploaded"})

    async with services.locks.hold(entity_id):
        current = await services.record_store.get_entity(entity_id)
        existing = current.photo_urls if current else entity.photo_urls
        await services.record_store.update_entity(entity_id, {"photo_urls": existing + urls})
    logger.info(f"✓ Attached {len(urls)} photo(s) to {entity_id}")

    admin_phone = services.settings.ADMIN_PHONE
    if admin_phone:
        try:
            await services.notifier.send_message(
                admin_phone,
                f"📸 {len(urls)} new photo(s) uploaded for {entity.name or entity_id} - {entity.address}",
                {"entity_id": entity_id},
            )
        except Exception:
            logger.exception(f"Error sending upload notification for {entity_id}")

    return {"success": True, "uploaded": len(urls), "urls": urls}
