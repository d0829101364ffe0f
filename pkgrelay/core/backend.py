"""Backend client: issues resolved rule calls against the package engine.

Wraps ``httpx.Client`` behind a single ``call(request)`` operation.  Every
call carries an explicit timeout; a call that times out fails instead of
hanging.  Errors are raised as ``BackendCallError`` and never retried here:
redelivery is the event bus's job.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING

import httpx

from pkgrelay.errors import RelayError
from pkgrelay.models.events import BackendRequest, BackendResponse

if TYPE_CHECKING:
    from pkgrelay.config import RelaySettings

logger = logging.getLogger(__name__)


class BackendCallError(RelayError):
    """Raised when a backend call errors or returns a non-2xx status.

    ``response`` is set when the backend answered with a failure status;
    it is ``None`` for transport errors and timeouts.
    """

    def __init__(self, message: str, *, response: BackendResponse | None = None) -> None:
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response is not None else None


def capture_response(response: httpx.Response) -> BackendResponse:
    """Convert an ``httpx.Response`` into a ``BackendResponse``.

    Repeated headers keep every value, in the order received.
    """
    headers: dict[str, list[str]] = {}
    for name, value in response.headers.multi_items():
        headers.setdefault(name.title(), []).append(value)
    status_text = response.reason_phrase
    if not status_text:
        try:
            status_text = HTTPStatus(response.status_code).phrase
        except ValueError:
            status_text = ""
    return BackendResponse(
        status_code=response.status_code,
        status_text=status_text,
        headers=headers,
        body=response.text,
    )


class BackendClient:
    """HTTP client for the package engine API.

    Parameters
    ----------
    base_url:
        Scheme and host of the backend, e.g. ``http://localhost:3000``.
    timeout_seconds:
        Per-call timeout.  Must be positive; there is no unbounded mode.
    api_prefix:
        Path prefix inserted before every rule path, e.g.
        ``/package-engine`` when the backend sits behind an API gateway
        resource.
    transport:
        Optional ``httpx`` transport, used by tests to fake the backend.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float,
        *,
        api_prefix: str = "",
        transport: httpx.BaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self._api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=headers or {},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: RelaySettings, *, transport: httpx.BaseTransport | None = None
    ) -> BackendClient:
        return cls(
            settings.backend_base_url,
            settings.backend_timeout_seconds,
            api_prefix=settings.backend_api_prefix,
            transport=transport,
        )

    def url_path(self, path: str) -> str:
        return f"{self._api_prefix}{path}"

    def call(self, request: BackendRequest) -> BackendResponse:
        """Issue *request* and return the captured response.

        Raises
        ------
        BackendCallError
            On transport errors, timeouts, or a non-2xx status.
        """
        path = self.url_path(request.path)
        logger.debug("Backend call %s %s query=%s", request.method.value, path, request.query)
        try:
            response = self._client.request(
                request.method.value, path, params=request.query or None
            )
        except httpx.TimeoutException as exc:
            raise BackendCallError(
                f"{request.method.value} {path} timed out: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendCallError(
                f"{request.method.value} {path} failed: {exc}"
            ) from exc

        captured = capture_response(response)
        if not captured.ok:
            raise BackendCallError(
                f"{request.method.value} {path} returned "
                f"{captured.status_code} {captured.status_text}",
                response=captured,
            )
        return captured

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> BackendClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
