from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ApiError(BaseModel):
    """Structured error body, in the shape the client classifier recognizes."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(alias="messageId")
    message_description: str = Field(alias="messageDescription")


class HealthOut(BaseModel):
    ok: bool = True
    auth_required: bool = False
    formats: List[str] = Field(default_factory=list)
