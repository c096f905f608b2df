# This project was developed with assistance from AI tools.
"""RFC 7807 Problem Details error response schema."""

from pydantic import BaseModel, Field

from ..core.errors import WalletBotError

_TITLES: dict[int, str] = {
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
}


class ErrorResponse(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See https://datatracker.ietf.org/doc/html/rfc7807
    """

    type: str = Field(
        default="about:blank",
        description="URI reference identifying the problem type.",
    )
    title: str = Field(description="Short human-readable summary of the problem.")
    status: int = Field(description="HTTP status code.")
    detail: str = Field(
        default="",
        description="Human-readable explanation specific to this occurrence.",
    )
    request_id: str = Field(
        default="",
        description="Correlation ID for tracing this request in logs.",
    )

    @classmethod
    def build(cls, status_code: int, detail: str, request_id: str) -> "ErrorResponse":
        return cls(
            title=_TITLES.get(status_code, "Error"),
            status=status_code,
            detail=detail,
            request_id=request_id,
        )

    @classmethod
    def from_domain_error(cls, exc: WalletBotError, request_id: str) -> "ErrorResponse":
        return cls.build(exc.status_code, exc.message, request_id)
