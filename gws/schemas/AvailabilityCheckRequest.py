from pydantic import BaseModel, Field
from typing import Optional, List

DEFAULT_AVAILABILITY_TEMPLATE = """Hey {{TECH_NAME}}, got a service call this week if you're available.

Location: {{ADDRESS}}

Please make your selection:

👍 YES - I'm available
{{YES_LINK}}

👎 NO - Not available
{{NO_LINK}}

Or just reply YES or NO to this message"""


class AvailabilityCheckRequest(BaseModel):
    entity_id: str = Field(..., alias="entityId", min_length=1)
    # Falls back to every tech marked Available in the Record Store
    responder_ids: Optional[List[str]] = Field(default=None, alias="responderIds")
    template: str = DEFAULT_AVAILABILITY_TEMPLATE

    model_config = {"populate_by_name": True}


class AvailabilityDispatchResult(BaseModel):
    responder_id: str = Field(..., alias="techId")
    name: Optional[str] = Field(default=None, alias="tech")
    status: str
    error: Optional[str] = None

    model_config = {"populate_by_name": True}


class AvailabilityCheckResponse(BaseModel):
    success: bool = True
    entity_id: str = Field(..., alias="leadId")
    techs_contacted: int = Field(..., alias="techsContacted")
    results: List[AvailabilityDispatchResult]

    model_config = {"populate_by_name": True}
