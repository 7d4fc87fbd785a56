"""Outbound reply model."""

from typing import List

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Reply to one inbound message. Empty text means stay silent."""

    text: str = ""
    media_urls: List[str] = Field(
        default_factory=list, description="Poster images to attach (MMS)"
    )
