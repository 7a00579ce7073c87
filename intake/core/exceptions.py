"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere. The client-side session
engine catches them at its side-channel boundaries (autosave, collection
flush, AI generation) and logs instead of propagating.

Usage:
    from intake.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Submission", resource_id=42)
    raise ValidationError("Unknown field", details={"colour": "not editable"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Used for both unknown primary keys and unknown access tokens. The token
    itself is never echoed back in the message.

    Args:
        resource: Human-readable model/entity name (e.g. "Submission").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint) — this
    exception signals that the data was well-formed but violated a business
    rule (e.g. unknown status, protected field, closed vertical).

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write is based on a stale version of the data.

    Maps to HTTP 409.

    Args:
        resource: Model or collection name.
        field: The versioned field that diverged.
        value: The version the caller expected.
        current: The version currently stored.
    """

    def __init__(self, resource: str, field: str, value=None, current=None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        self.current = current
        msg = f"{resource} {field}={value!r} is stale"
        if current is not None:
            msg += f" (current={current!r})"
        super().__init__(msg)


class GenerationError(Exception):
    """Raised when the text-generation endpoint cannot produce copy.

    Deliberately generic: missing credentials, upstream failures and
    malformed responses all surface the same way to callers.
    """

    def __init__(self, message: str = "AI generation failed") -> None:
        super().__init__(message)
