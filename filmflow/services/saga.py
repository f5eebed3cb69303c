"""
Saga - compensating rollback for multi-step writes

The store commits every call on its own, so an operation that writes to
several tables registers an undo step after each successful write. If a
later step raises, the registered undo steps run newest-first.

Usage:
    saga = Saga("cutting_entry.record", plan_id=plan.id)
    async with saga:
        entry = await store.insert(CuttingEntry, values)
        saga.on_rollback("delete cutting entry", store.delete, CuttingEntry, entry.id)
        ...

Exit behaviour on error:
- Domain errors (validation, not found, conflict, insufficient stock,
  permission) are re-raised unchanged after rollback.
- Anything else (store failures, bugs) is re-raised as InternalError with
  the rollback outcome in details.

Rollback is best-effort: a failing undo step is logged and recorded, and the
remaining steps still run.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from filmflow.core.exceptions import FilmflowError, InternalError, StoreError

logger = logging.getLogger(__name__)


@dataclass
class SagaResult:
    """Outcome of a successful engine operation."""
    record: Any
    warnings: List[str] = field(default_factory=list)


class Saga:

    def __init__(self, name: str, **context):
        self.name = name
        self.context: Dict[str, Any] = context
        self.warnings: List[str] = []
        self._compensations: List[Tuple[str, Callable[..., Awaitable[Any]], tuple]] = []
        self.rolled_back: List[str] = []
        self.rollback_failures: List[str] = []

    def on_rollback(self, description: str, action: Callable[..., Awaitable[Any]], *args) -> None:
        """Register the undo step for a write that just succeeded."""
        self._compensations.append((description, action, args))

    def warn(self, message: str) -> None:
        """Record a non-fatal problem to hand back to the caller."""
        logger.warning("SAGA_WARNING: %s %s", self.name, message)
        self.warnings.append(message)

    @property
    def steps_completed(self) -> int:
        return len(self._compensations)

    async def rollback(self) -> None:
        while self._compensations:
            description, action, args = self._compensations.pop()
            try:
                await action(*args)
                self.rolled_back.append(description)
                logger.info("SAGA_ROLLBACK: %s step=%r ok", self.name, description)
            except Exception as e:
                # Keep going: later undo steps are independent of this one
                self.rollback_failures.append(f"{description}: {type(e).__name__}: {e}")
                logger.error(
                    "SAGA_ROLLBACK_FAILED: %s step=%r context=%s error=%s: %s",
                    self.name, description, self.context, type(e).__name__, e,
                )

    async def __aenter__(self) -> "Saga":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            return False

        steps = self.steps_completed
        await self.rollback()

        if not isinstance(exc, Exception):
            # Cancellation and interpreter exits propagate unchanged
            logger.warning(
                "SAGA_INTERRUPTED: %s error=%s steps_rolled_back=%d rollback_failures=%d",
                self.name, type(exc).__name__, steps, len(self.rollback_failures),
            )
            return False

        if isinstance(exc, FilmflowError) and not isinstance(exc, StoreError):
            logger.info(
                "SAGA_ABORTED: %s code=%s steps_rolled_back=%d",
                self.name, exc.code, steps,
            )
            if self.rollback_failures:
                exc.details.setdefault("rollback_failures", list(self.rollback_failures))
            return False

        logger.error(
            "SAGA_FAILED: %s context=%s error=%s: %s steps_rolled_back=%d rollback_failures=%d",
            self.name, self.context, type(exc).__name__, exc, steps, len(self.rollback_failures),
        )
        raise InternalError(
            f"{self.name} failed and was rolled back",
            details={
                "cause": type(exc).__name__,
                "rolled_back": list(self.rolled_back),
                "rollback_failures": list(self.rollback_failures),
            },
        ) from exc

    def result(self, record: Any) -> SagaResult:
        return SagaResult(record=record, warnings=list(self.warnings))
