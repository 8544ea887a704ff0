"""Error taxonomy of the label verification pipeline."""

from typing import Optional


class LabelCheckError(Exception):
    """Base class for errors surfaced to the caller as a terminal event."""


class InvalidInputError(LabelCheckError):
    """No usable image source was provided."""


class UnsafeURLError(LabelCheckError):
    """A URL failed the SSRF validation."""


class FetchError(LabelCheckError):
    """Fetching a remote image failed (status, redirect, size or DNS)."""


class VerificationTimeoutError(LabelCheckError, TimeoutError):
    """The wall-clock budget was exhausted before a stage could start."""

    def __init__(self, stage: str, elapsed: float, limit: float):
        self.stage = stage
        self.elapsed = elapsed
        self.limit = limit
        super().__init__(
            f"Tempo massimo superato prima {stage} "
            f"({elapsed:.0f}s trascorsi, limite {limit:.0f}s)"
        )


class NoCandidateError(LabelCheckError):
    """No reference label produced a usable textual comparison."""


class PersistenceError(LabelCheckError):
    """The verification record could not be stored."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause
