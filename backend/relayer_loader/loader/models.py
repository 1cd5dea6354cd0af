from __future__ import annotations
import asyncio
import enum
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from relayer_loader.core.config import settings


class OutcomeStatus(str, enum.Enum):
    already_satisfied = 'already_satisfied'
    loaded = 'loaded'
    failed = 'failed'
    cancelled = 'cancelled'


class FailureKind(str, enum.Enum):
    environment = 'environment'
    timeout = 'timeout'
    network = 'network'
    shape_invalid = 'shape_invalid'


class OutcomeSource(str, enum.Enum):
    script = 'script'
    fallback = 'fallback'


class LoaderOutcome(BaseModel):
    status: OutcomeStatus
    attempts: int = 0
    failure: Optional[FailureKind] = None
    source: Optional[OutcomeSource] = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.already_satisfied, OutcomeStatus.loaded)

    def summary(self) -> dict:
        return {
            'status': self.status.value,
            'attempts': self.attempts,
            'failure': self.failure.value if self.failure else None,
            'source': self.source.value if self.source else None,
            'error': self.error,
        }


class LoaderOptions(BaseModel):
    """Retry and timing knobs for a single ResourceLoader.

    Defaults come from settings and go through the same bounds as explicit
    arguments.
    """

    model_config = ConfigDict(validate_default=True)

    max_attempts: int = Field(default_factory=lambda: settings.max_attempts, ge=1)
    timeout_ms: int = Field(default_factory=lambda: settings.timeout_ms, gt=0)
    retry_backoff_ms: int = Field(default_factory=lambda: settings.retry_backoff_ms, ge=0)
    settle_delay_ms: int = Field(default_factory=lambda: settings.settle_delay_ms, ge=0)

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def retry_backoff(self) -> float:
        return self.retry_backoff_ms / 1000.0

    @property
    def settle_delay(self) -> float:
        return self.settle_delay_ms / 1000.0


@dataclass(frozen=True, slots=True)
class LoadAttempt:
    index: int
    max_attempts: int

    @property
    def number(self) -> int:
        return self.index + 1

    @property
    def has_next(self) -> bool:
        return self.index < self.max_attempts - 1

    def next(self) -> LoadAttempt:
        if not self.has_next:
            raise ValueError(f"attempt budget of {self.max_attempts} exhausted")
        return LoadAttempt(self.index + 1, self.max_attempts)

    def describe(self) -> str:
        return f"{self.number}/{self.max_attempts}"


class CancelToken:
    def __init__(self):
        self._event = asyncio.Event()
    def request(self):
        self._event.set()
    def is_cancelled(self) -> bool:
        return self._event.is_set()
    async def wait(self) -> None:
        await self._event.wait()
