from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Sequence, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderAttempt(Generic[T]):
    name: str
    fetch: Callable[[], T | None]
    accept: Callable[[T], bool] | None = None


@dataclass(frozen=True)
class FallbackOutcome(Generic[T]):
    value: T | None
    provider: str | None
    degraded: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.value is not None


class FallbackResolver(Generic[T]):
    """Tries providers strictly in order; the first usable value wins.

    Provider exceptions are recorded and never propagate. When every attempt
    fails, ``degraded`` (if given) supplies a lower-fidelity value.
    """

    def __init__(
        self,
        name: str,
        attempts: Sequence[ProviderAttempt[T]],
        degraded: Callable[[], T] | None = None,
    ) -> None:
        self.name = name
        self.attempts = list(attempts)
        self.degraded = degraded

    def resolve(self) -> FallbackOutcome[T]:
        errors: list[str] = []
        for attempt in self.attempts:
            try:
                value = attempt.fetch()
            except Exception as exc:
                errors.append(f"{attempt.name}: {exc}")
                logger.warning(
                    "fallback.attempt_failed",
                    resolver=self.name,
                    provider=attempt.name,
                    error=str(exc),
                )
                continue

            if value is None or (attempt.accept is not None and not attempt.accept(value)):
                errors.append(f"{attempt.name}: unusable_result")
                logger.info(
                    "fallback.attempt_rejected",
                    resolver=self.name,
                    provider=attempt.name,
                )
                continue

            logger.info("fallback.resolved", resolver=self.name, provider=attempt.name)
            return FallbackOutcome(value=value, provider=attempt.name, errors=errors)

        if self.degraded is None:
            logger.warning("fallback.exhausted", resolver=self.name, errors=errors[-6:])
            return FallbackOutcome(value=None, provider=None, errors=errors)

        logger.warning("fallback.degraded", resolver=self.name, errors=errors[-6:])
        return FallbackOutcome(
            value=self.degraded(),
            provider="degraded",
            degraded=True,
            errors=errors,
        )
