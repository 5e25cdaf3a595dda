"""Error kinds raised while computing the soil moisture index."""

from __future__ import annotations


class SessionError(Exception):
    """Credentials are missing/invalid or the engine handshake failed."""


class EngineError(Exception):
    """A remote evaluation failed.

    `stage` names the pipeline step that issued the evaluation (for example
    "baseline reduction") once the error has passed through the staged
    evaluation helper.
    """

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class EngineTimeoutError(EngineError):
    """The evaluation client gave up waiting for the engine."""


class ComputationError(Exception):
    """Top-level failure of `compute_soil_moisture_index`."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"failed computing soil moisture index: {cause}")
        self.stage = stage
        self.cause = cause
