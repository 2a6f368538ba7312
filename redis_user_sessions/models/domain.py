"""
Domain Models - Session Data

This module contains the minimum session schema and the value object
returned when enumerating a user's sessions.

Session data on the wire is a JSON object with two mandatory fields,
`userId` and `expires` (UTC ISO-8601, `Z` suffix), plus any passenger fields
the caller chooses to store. Passenger fields are kept as-is.

Pattern: Pydantic for validation at boundaries (Sinha pp. 193-195)
Pattern: Domain models as value objects (Percival & Gregory pp. 59-65)
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

# YYYY-MM-DDTHH:MM:SS[.fraction]Z
_EXPIRES_PATTERN = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?Z", re.ASCII
)


def parse_expires(value: str) -> datetime:
    """
    Parse a UTC ISO-8601 `expires` string into an aware datetime.

    Only full datetimes with a `Z` suffix are accepted. Date-only strings,
    strings without a zone and numeric offsets are rejected. Fractional
    seconds beyond microseconds are truncated.

    Args:
        value: Datetime string such as "2030-01-01T00:00:00.000Z".

    Returns:
        Timezone-aware UTC datetime.

    Raises:
        ValueError: If the string is not a UTC ISO-8601 datetime.
    """
    match = _EXPIRES_PATTERN.fullmatch(value)
    if match is None:
        raise ValueError(f"{value!r} is not of the form YYYY-MM-DDTHH:MM:SS[.sss]Z")

    text, fraction = match.groups()
    if fraction:
        text = f"{text}.{fraction[:6].ljust(6, '0')}"
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


def to_unix_ms(moment: datetime) -> int:
    """Convert an aware datetime to integer milliseconds since the epoch."""
    return (moment - _EPOCH) // _ONE_MS


def expires_to_ms(value: str) -> int:
    """Convert an ISO-8601 `expires` string to milliseconds since the epoch."""
    return to_unix_ms(parse_expires(value))


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return to_unix_ms(datetime.now(timezone.utc))


# =============================================================================
# SessionData Model
# =============================================================================


class SessionData(BaseModel):
    """
    Minimum session schema.

    Only `userId` and `expires` are validated; every other key is allowed
    through untouched so callers can attach arbitrary passenger data.

    Attributes:
        user_id: Owner of the session (wire name `userId`), immutable.
        expires: Absolute expiry as an ISO-8601 string.

    Example:
        >>> data = SessionData.model_validate(
        ...     {"userId": "u_1", "expires": "2030-01-01T00:00:00.000Z", "role": "admin"}
        ... )
        >>> data.expires_ms
        1893456000000
    """

    user_id: str = Field(..., alias="userId")
    expires: str = Field(..., description="UTC ISO-8601 absolute expiry")

    model_config = {"extra": "allow"}

    @field_validator("expires")
    @classmethod
    def validate_expires(cls, v: str) -> str:
        """Reject strings that are not UTC ISO-8601 datetimes."""
        try:
            parse_expires(v)
        except ValueError as e:
            raise ValueError(f"expires must be an ISO-8601 datetime: {e}") from e
        return v

    @property
    def expires_at(self) -> datetime:
        """Expiry as an aware datetime."""
        return parse_expires(self.expires)

    @property
    def expires_ms(self) -> int:
        """Expiry as milliseconds since the epoch (store TTL and index score)."""
        return expires_to_ms(self.expires)


# =============================================================================
# UserSession Model
# =============================================================================


class UserSession(BaseModel):
    """
    A live session belonging to a user, as returned by enumeration.

    Attributes:
        session_id: The session identifier.
        data: The stored session data, exactly as written.
    """

    session_id: str
    data: dict[str, Any]

    model_config = {"frozen": True}
