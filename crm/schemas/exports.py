from typing import Any

from pydantic import BaseModel, field_validator


class ExportRequester(BaseModel):
    name: str
    email: str
    ip: str


class ExportOtpRequested(BaseModel):
    ok: bool
    message: str
    requester: ExportRequester


class ExportVerifyRequest(BaseModel):
    # Optional so a missing code is reported as 400 rather than a 422 validation error.
    otp: str | None = None

    @field_validator("otp", mode="before")
    @classmethod
    def _digits_as_text(cls, value: Any) -> Any:
        # Clients may send the code as a JSON number.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ExportResult(BaseModel):
    ok: bool
    items: list[dict[str, Any]]
