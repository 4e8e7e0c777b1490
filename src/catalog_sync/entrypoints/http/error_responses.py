"""Error body models documented in the OpenAPI schema.

The exception handlers build these bodies as plain dicts; the models exist so
routes can declare them in ``responses=``.
"""

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """One rejected filter field."""

    field: str = Field(description="FilterState field name, or request field path")
    message: str
    code: str | None = Field(default=None, description="Pydantic error type for malformed requests")


class ErrorResponse(BaseModel):
    detail: str = Field(description="Human-readable message, safe to show as a notice")
    code: str | None = Field(default=None, description="Stable error code, see STATUS_CODE_MAP")
    errors: list[ErrorDetail] | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"detail": "View with identifier 'outlet' not found", "code": "NOT_FOUND"},
                {"detail": "Cannot remove condition filter on this page", "code": "LOCKED_KEY"},
                {
                    "detail": "Validation failed",
                    "code": "VALIDATION_ERROR",
                    "errors": [
                        {"field": "min_price", "message": "cannot be greater than max_price"},
                    ],
                },
                {"detail": "Catalog unavailable", "code": "FETCH_ERROR"},
            ]
        }
    )
