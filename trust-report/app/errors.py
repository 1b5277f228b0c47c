from __future__ import annotations

from typing import Any


class ReportError(Exception):
    """Base class for failures while producing a report."""


class UpstreamAnalyticsError(ReportError):
    """The trust service answered with a non-success status.

    ``payload`` is the upstream JSON body exactly as received; the handler
    returns it to the caller unchanged.
    """

    def __init__(self, status_code: int, payload: Any) -> None:
        super().__init__(f"trust service returned {status_code}")
        self.status_code = status_code
        self.payload = payload


class NoAvatarAvailable(ReportError):
    def __init__(self) -> None:
        super().__init__("Failed to fetch profile picture")


class UnknownVerdictError(ReportError, KeyError):
    def __init__(self, verdict: str) -> None:
        super().__init__(verdict)
        self.verdict = verdict

    def __str__(self) -> str:
        return f"no display color for verdict {self.verdict!r}"


class RenderFailure(ReportError):
    """The PDF engine, a font or an asset failed."""


class FontLoadError(RenderFailure):
    pass


class ConfigError(RuntimeError):
    pass
