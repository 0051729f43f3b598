"""
API Request Models

Pydantic models for request validation on the local player API and
for the heartbeat body sent upstream.
"""
from typing import Optional
from pydantic import BaseModel, Field


class HeartbeatRequest(BaseModel):
    device_key: str = Field(serialization_alias="deviceKey")


class VideoEndedRequest(BaseModel):
    item_id: Optional[str] = None  # None = whatever video is currently showing
