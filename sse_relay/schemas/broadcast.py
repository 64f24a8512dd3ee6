from typing import Any, Optional

from pydantic import ConfigDict, Field

from sse_relay.schemas import AppBaseModel


class PublishRequest(AppBaseModel):
    """POST /bcast request body.

    ``data`` is required and may be any JSON value. A missing or empty
    ``event`` is broadcast as ``message``; labels are sent untrimmed.
    Unknown keys are ignored so existing publishers that send extra
    fields keep working.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=False)

    event: Optional[str] = Field(None, max_length=200, pattern=r"^[^\r\n]*$")
    data: Any


class PublishResponse(AppBaseModel):
    """POST /bcast response."""

    success: bool
