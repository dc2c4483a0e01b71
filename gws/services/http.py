import logging
from typing import Optional

import httpx

from gws.core.exceptions import CollaboratorFailure, CollaboratorTimeout

logger = logging.getLogger(__name__)


async def send_request(
    client: httpx.AsyncClient,
    collaborator: str,
    method: str,
    url: str,
    allow_404: bool = False,
    **kwargs,
) -> Optional[dict]:
    """Issue a request and return the decoded JSON body.

    Timeouts become CollaboratorTimeout, transport and HTTP errors become
    CollaboratorFailure. With ``allow_404`` a 404 returns None instead.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        logger.error(f"{collaborator} request timed out: {method} {url}")
        raise CollaboratorTimeout(collaborator, f"timed out: {e}") from e
    except httpx.HTTPError as e:
        logger.error(f"{collaborator} request failed: {method} {url}: {e}")
        raise CollaboratorFailure(collaborator, str(e)) from e

    if allow_404 and response.status_code == 404:
        return None
    if response.status_code >= 400:
        logger.error(f"{collaborator} returned {response.status_code}: {response.text[:300]}")
        raise CollaboratorFailure(collaborator, f"HTTP {response.status_code}", status_code=response.status_code)

    try:
        return response.json()
    except ValueError as e:
        raise CollaboratorFailure(collaborator, "malformed JSON response", status_code=response.status_code) from e
