from pydantic import BaseModel, ConfigDict


class AppBaseModel(BaseModel):
    """Strict base for request/response bodies of the control endpoints."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        str_max_length=65536,
        extra="forbid",
        validate_default=True,
    )
