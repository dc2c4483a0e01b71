from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class Entity(BaseModel):
    """Engagement/lead being staffed, with only the fields this service reads."""
    id: str
    name: str = ""
    address: str = ""
    status: Optional[str] = None
    availability_log: str = ""
    available_responder_ids: List[str] = Field(default_factory=list)
    availability_requested: bool = False
    scheduled_at: Optional[datetime] = None
    photo_urls: List[str] = Field(default_factory=list)


class Responder(BaseModel):
    """Technician asked for availability."""
    id: str
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    phone: Optional[str] = None
    availability_status: Optional[str] = None

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full or self.name or self.id

    @property
    def greeting_name(self) -> str:
        return self.first_name or (self.name.split(" ")[0] if self.name else "") or self.display_name


class MessageRecord(BaseModel):
    id: Optional[str] = None
    direction: str
    to: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    content: str = ""
    status: str = "Sent"
    kind: Optional[str] = None
    entity_id: Optional[str] = None
    responder_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}
