"""Error taxonomy shared by every pipeline layer."""

from __future__ import annotations

from typing import Optional


class DreamVizError(Exception):
    """Base class for errors surfaced to callers.

    ``kind`` is a stable machine-readable category, ``detail`` the
    human-readable message.
    """

    kind = "internal"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ConfigurationError(DreamVizError):
    """Missing credentials or required settings. Fatal at startup."""

    kind = "configuration"


class TransportError(DreamVizError):
    """A single request failed on the network or with a non-2xx status."""

    kind = "transport"

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.status_code = status_code


class ContractViolationError(DreamVizError):
    """A response lacked a field the caller cannot proceed without."""

    kind = "contract"


class TranscriptionError(ContractViolationError):
    """The transcription reply could not be used."""


class PromptEngineeringError(ContractViolationError):
    """The prompt-engineering reply carried no usable structured JSON."""
