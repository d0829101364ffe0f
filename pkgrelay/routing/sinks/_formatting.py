"""Notification formatting: turns a backend call result into a topic message.

Shared by every sink and by the workflow executor.  The only failure mode is
a result missing a required field, in which case nothing partial is built.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pkgrelay.errors import RelayError
from pkgrelay.models.events import BackendResponse, NotificationMessage

# Accepted spellings for each required result field.
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "status_code": ("statusCode", "status_code", "StatusCode"),
    "status_text": ("statusText", "status_text", "StatusText"),
    "body": ("body", "responseBody", "response_body", "ResponseBody"),
}
_HEADER_ALIASES: tuple[str, ...] = ("headers", "Headers", "responseHeaders", "ResponseHeaders")


class MalformedResultError(RelayError, ValueError):
    """Raised when a call result lacks fields required for a notification."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "Cannot build notification, result is missing: " + ", ".join(missing)
        )
        self.missing = missing


def _first(result: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    for alias in aliases:
        if alias in result and result[alias] is not None:
            return result[alias]
    return None


def extract_date(headers: Mapping[str, Any] | None) -> str | None:
    """Return the first ``Date`` header value, matched case-insensitively.

    Header values may be a single string or a list of strings.
    """
    if not headers:
        return None
    for name, value in headers.items():
        if name.lower() != "date":
            continue
        if isinstance(value, str):
            return value
        if value:
            return str(value[0])
    return None


def format_notification(result: BackendResponse | Mapping[str, Any]) -> NotificationMessage:
    """Build the ``{date, responseBody, statusCode, statusText}`` message.

    *result* is a ``BackendResponse`` or a mapping in the backend's wire
    spelling (``statusCode``, ``statusText``, ``headers``, ``body``).

    Raises
    ------
    MalformedResultError
        If the status code, status text, or body is absent.
    """
    if isinstance(result, BackendResponse):
        return NotificationMessage(
            date=result.header("Date"),
            response_body=result.body,
            status_code=result.status_code,
            status_text=result.status_text,
        )

    if not isinstance(result, Mapping):
        raise MalformedResultError(list(_FIELD_ALIASES))

    values = {field: _first(result, aliases) for field, aliases in _FIELD_ALIASES.items()}
    missing = [field for field, value in values.items() if value is None]
    if missing:
        raise MalformedResultError(missing)

    try:
        status_code = int(values["status_code"])
    except (TypeError, ValueError) as exc:
        raise MalformedResultError(["status_code"]) from exc

    body = values["body"]
    return NotificationMessage(
        date=extract_date(_first(result, _HEADER_ALIASES)),
        response_body=body if isinstance(body, str) else str(body),
        status_code=status_code,
        status_text=str(values["status_text"]),
    )


def format_summary(message: NotificationMessage) -> str:
    """One-line human-readable summary of a notification."""
    date = message.date or "no date"
    return f"{message.status_code} {message.status_text} ({date})"
