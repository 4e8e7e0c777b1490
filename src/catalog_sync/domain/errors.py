"""Error taxonomy of the catalog synchronization engine.

Nothing here is fatal. Some errors are raised to the caller (validation,
locked keys, fetch failures); others are only collected and logged
(guard rejections, URL decode warnings). Entrypoints translate the raised
ones into their own protocol.
"""

from typing import Any


class DomainError(Exception):
    """Root of every engine error.

    ``error_code`` is stable and can double as an i18n key for UI notices.
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        """
        Args:
            message: Human-readable message
            **context: Structured details (filter key, view name, status code)
        """
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.error_code, **self.context}


# ==============================================================================
# Raised
# ==============================================================================


class ValidationError(DomainError):
    """A filter patch or state breaks an invariant.

    REST: 422.
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, str]] | None = None,
        **context: Any,
    ) -> None:
        """
        Args:
            message: Summary; defaults depend on whether field errors exist
            errors: Per-field problems, e.g. ``[{"field": "rating", "message": "..."}]``
        """
        self.errors: list[dict[str, str]] | None = errors or None
        default = "Validation failed" if self.errors else "Validation error"
        super().__init__(message or default, **context)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class FilterValidationError(ValidationError):
    """A patch cannot produce a valid FilterState (unknown key, bad value, inverted range)."""


class NotFoundError(DomainError):
    """An unknown view name (REST: 404)."""

    error_code: str = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str | None = None, **context: Any) -> None:
        message = (
            f"{resource} with identifier '{identifier}' not found"
            if identifier
            else f"{resource} not found"
        )
        super().__init__(message, resource=resource, identifier=identifier, **context)


class ConflictError(DomainError):
    """A command conflicts with the view's constraints (REST: 409)."""

    error_code: str = "CONFLICT"


class LockedKeyViolation(ConflictError):
    """Attempt to remove or change a filter the current view locks.

    A notice, not a failure: the caller's state is left untouched and
    ``message`` is suitable for showing to the user as is.
    """

    error_code: str = "LOCKED_KEY"

    def __init__(self, key: str, view: str, **context: Any) -> None:
        super().__init__(f"Cannot remove {key} filter on this page", key=key, view=view, **context)
        self.key = key


class FetchError(DomainError):
    """The catalog page fetch failed. Retryable; committed filters are kept.

    REST: 502.
    """

    error_code: str = "FETCH_ERROR"


# ==============================================================================
# Collected, never raised
# ==============================================================================


class GuardRejected(DomainError):
    """Why the session guard refused to fetch a FilterState."""

    error_code: str = "GUARD_REJECTED"

    def __init__(self, reason: str, **context: Any) -> None:
        super().__init__(f"Fetch not admitted: {reason}", reason=reason, **context)
        self.reason = reason


class DecodeWarning(DomainError):
    """A URL value failed coercion and its field kept the view default."""

    error_code: str = "DECODE_WARNING"

    def __init__(self, key: str, value: str, reason: str) -> None:
        super().__init__(f"Ignored {key}={value!r}: {reason}", key=key, value=value)
        self.key = key
        self.value = value
        self.reason = reason
