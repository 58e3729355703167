# backend/lessonbook/api/dependencies/params.py
"""Query parameter parsing shared by routes."""

from datetime import datetime
from typing import Optional

from ...core.exceptions import ValidationException
from ...domain.grid import parse_utc


def parse_utc_boundary(
    value: Optional[str], name: str, *, required: bool = True
) -> Optional[datetime]:
    """
    Parse an ISO-8601 query boundary carrying ``Z`` or an explicit offset.

    Raises:
        ValidationException: Missing (when required), malformed or naive value
    """
    if value is None or not value.strip():
        if required:
            raise ValidationException(
                f"Missing or invalid '{name}'",
                code="MISSING_PARAMETER",
                details={"parameter": name},
            )
        return None
    try:
        return parse_utc(value.strip())
    except ValidationException as e:
        raise ValidationException(
            f"Missing or invalid '{name}'",
            code=e.code,
            details={"parameter": name, "value": value},
        ) from e
