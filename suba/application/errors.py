"""
Application-level error types, mapped to HTTP statuses in ``suba.main``.
"""


class ValidationError(ValueError):
    """Bad input (400). ``missing`` lists absent required fields, if any."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.missing = missing or []


class NotFoundError(LookupError):
    """Scoped row absent or owned by another user (404)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def require_fields(data: dict, fields: list[str], message: str = "Required fields are missing") -> None:
    """Raise ValidationError naming every field that is None or blank."""
    missing = [
        f for f in fields
        if data.get(f) is None or (isinstance(data.get(f), str) and not data[f].strip())
    ]
    if missing:
        raise ValidationError(message, missing=missing)
