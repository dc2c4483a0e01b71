from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse, RedirectResponse
import logging

from gws.api.deps import get_services, require_admin
from gws.schemas.ShortLinkCreateRequest import ShortLinkCreateRequest, ShortLinkResponse
from gws.services.container import Services
from gws.web import pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shortlinks", tags=["shortlinks"], dependencies=[Depends(require_admin)])

# Catch-all; included after every other router
redirect_router = APIRouter(tags=["redirect"])


@router.post("", response_model=ShortLinkResponse, status_code=status.HTTP_201_CREATED)
def create_short_link(body: ShortLinkCreateRequest, services: Services = Depends(get_services)):
    code = services.short_links.create(body.target, body.entity_id)
    logger.info(f"API success: Shortened {body.target[:50]}... to {code}")
    return ShortLinkResponse(
        code=code,
        short_url=f"{services.settings.BASE_URL.rstrip('/')}/{code}",
        target=body.target,
    )


@router.get("/stats")
def short_link_stats(services: Services = Depends(get_services)):
    return services.short_links.stats()


@redirect_router.get("/{code}")
def redirect_short_link(code: str, services: Services = Depends(get_services)):
    target = services.short_links.resolve(code)
    if target is None:
        logger.warning(f"Redirect 404: Short code not found: {code}")
        return HTMLResponse(pages.link_not_found_page(), status_code=status.HTTP_404_NOT_FOUND)
    logger.info(f"Redirecting {code} -> {target[:50]}")
    return RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)
