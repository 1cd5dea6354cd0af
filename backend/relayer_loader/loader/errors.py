from __future__ import annotations

from relayer_loader.loader.models import FailureKind, LoaderOutcome, OutcomeStatus


class LoaderError(Exception):
    """Base class for terminal load() failures.

    Every error carries the number of attempts made before giving up so
    callers can report it without parsing the message.
    """

    kind: FailureKind = FailureKind.network

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts

    def outcome(self) -> LoaderOutcome:
        return LoaderOutcome(
            status=OutcomeStatus.failed,
            attempts=self.attempts,
            failure=self.kind,
            error=str(self),
        )


class EnvironmentUnavailableError(LoaderError):
    """No page context (global namespace and document) is available."""

    kind = FailureKind.environment


class LoadTimeoutError(LoaderError):
    kind = FailureKind.timeout


class LoadNetworkError(LoaderError):
    kind = FailureKind.network


class ShapeInvalidError(LoaderError):
    kind = FailureKind.shape_invalid


class ScriptLoadError(Exception):
    """Raised into a script node's outcome when the resource fails to load."""


class FallbackImportError(Exception):
    """The configured fallback module could not provide a valid capability."""
