import logging
import secrets

from fastapi import Depends, HTTPException, Request, status

from gws.services.container import Services

logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_admin(request: Request, services: Services = Depends(get_services)):
    """Admin JSON endpoints: Bearer token or X-Admin-Token, when ADMIN_API_TOKEN is set."""
    expected = services.settings.ADMIN_API_TOKEN
    if not expected:
        return
    supplied = request.headers.get("x-admin-token", "")
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        supplied = auth[7:].strip()
    if not supplied or not secrets.compare_digest(supplied, expected):
        logger.warning(f"Rejected admin request to {request.url.path}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
