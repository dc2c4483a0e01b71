from pydantic import BaseModel, Field, field_validator
from typing import Optional


class ShortLinkCreateRequest(BaseModel):
    target: str = Field(..., min_length=1)
    entity_id: Optional[str] = Field(default=None, alias="entityId")

    model_config = {"populate_by_name": True}

    @field_validator('target')
    def validate_target(cls, v):
        if len(v) > 2048:
            raise ValueError('target must be less than 2048 characters')
        # Absolute checkout/proposal URL or an internal path
        if not (v.startswith('http://') or v.startswith('https://') or v.startswith('/')):
            raise ValueError('target must be an http(s) URL or a path starting with /')
        if v.startswith('//'):
            raise ValueError('protocol-relative targets are not allowed')
        return v


class ShortLinkResponse(BaseModel):
    code: str
    short_url: str = Field(..., alias="shortUrl")
    target: str

    model_config = {"populate_by_name": True}
