from __future__ import annotations

from typing import Any


class HypernodesError(Exception):
    """Base class for errors raised to callers of the Hypernodes client."""

    def __init__(self, detail: str, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}


class TransportError(HypernodesError):
    """The service could not be reached or answered with a non-2xx status."""

    def __init__(
        self,
        detail: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(detail, extra={"url": url, "status_code": status_code})
        self.url = url
        self.status_code = status_code


class DecodeError(HypernodesError):
    """The response body did not match the expected JSON shape."""

    def __init__(self, detail: str, *, url: str | None = None, body: str | None = None) -> None:
        super().__init__(detail, extra={"url": url})
        self.url = url
        self.body = body


class NotReadyError(HypernodesError):
    """A session is missing the funding key or graph binding needed to chat."""

    def __init__(self, missing: tuple[str, ...]) -> None:
        super().__init__(
            f"Session is not ready; missing: {', '.join(missing)}",
            extra={"missing": list(missing)},
        )
        self.missing = missing


__all__ = ["DecodeError", "HypernodesError", "NotReadyError", "TransportError"]
