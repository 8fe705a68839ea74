"""Base classes for tool parameters."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseParams(BaseModel):
    """Base class for all tool parameters.

    Uses extra="forbid" to reject unknown fields with clear errors.
    """

    model_config = ConfigDict(extra="forbid")


class ResponseIdParams(BaseParams):
    """Parameters for tools addressing one cached response."""

    response_id: str


RESPONSE_ID_PROPERTY = {
    "type": "string",
    "description": "The ID of the cached response",
}
