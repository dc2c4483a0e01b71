from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
import logging

from gws.api.deps import get_services, require_admin
from gws.core.exceptions import CodeNotFound, EntityNotFound, HubError, ResponderNotFound
from gws.schemas.AvailabilityCheckRequest import AvailabilityCheckRequest, AvailabilityCheckResponse
from gws.services.container import Services
from gws.services.recorder import Answer, ResponseSource
from gws.utils.encoding import AVAILABILITY_ALPHABET, is_well_formed
from gws.web import pages

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability"])


@router.post(
    "/api/availability-checks",
    response_model=AvailabilityCheckResponse,
    dependencies=[Depends(require_admin)],
)
async def send_availability_check(body: AvailabilityCheckRequest, services: Services = Depends(get_services)):
    return await services.dispatcher.dispatch(body.entity_id, body.responder_ids, body.template)


def _resolve_code(code: str, services: Services):
    if not is_well_formed(code, AVAILABILITY_ALPHABET):
        logger.warning(f"Malformed availability code: {code!r}")
        raise CodeNotFound(code)
    entry = services.availability_codes.resolve(code)
    if entry is None:
        logger.warning(f"Unknown or expired availability code: {code}")
        raise CodeNotFound(code)
    return entry


async def _record_click(code: str, answer: Answer, services: Services) -> HTMLResponse:
    try:
        entry = await run_in_threadpool(_resolve_code, code, services)
    except CodeNotFound:
        return HTMLResponse(pages.invalid_link_page(), status_code=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Tech {entry.responder_id} responded {answer.value} for engagement {entry.entity_id}")
    try:
        recorded = await services.recorder.record_response(
            entry.entity_id, entry.responder_id, answer, ResponseSource.LINK
        )
    except EntityNotFound as e:
        logger.warning(f"Availability code {code} points at deleted engagement {e.entity_id}")
        return HTMLResponse(pages.not_found_page(), status_code=status.HTTP_404_NOT_FOUND)
    except ResponderNotFound as e:
        logger.warning(f"Availability code {code} points at deleted tech {e.responder_id}")
        return HTMLResponse(pages.not_found_page(), status_code=status.HTTP_404_NOT_FOUND)
    except HubError:
        logger.exception(f"Error recording tech {answer.value} response for code {code}")
        return HTMLResponse(pages.error_page(), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception:
        logger.exception(f"Unexpected error recording tech {answer.value} response for code {code}")
        return HTMLResponse(pages.error_page(), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTMLResponse(pages.response_recorded_page(recorded.responder.greeting_name, answer.value))


@router.get("/ty/{code}", response_class=HTMLResponse, tags=["redirect"])
async def tech_yes(code: str, services: Services = Depends(get_services)):
    return await _record_click(code, Answer.YES, services)


@router.get("/tn/{code}", response_class=HTMLResponse, tags=["redirect"])
async def tech_no(code: str, services: Services = Depends(get_services)):
    return await _record_click(code, Answer.NO, services)
