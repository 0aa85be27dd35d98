"""Timing helpers to log the duration of storage-bound operations."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator, Optional


@dataclass
class _Timer:
    label: str
    logger: logging.Logger
    level: int
    unit: str
    count: Optional[int] = None
    start: float = field(default_factory=perf_counter)

    def set_count(self, count: int) -> None:
        self.count = count

    @property
    def elapsed(self) -> float:
        return perf_counter() - self.start

    def finish(self, success: bool = True) -> None:
        elapsed = self.elapsed
        if success:
            message = f"{self.label} completed in {elapsed:.3f}s"
            if self.count is not None:
                message += f" ({self.count:,} {self.unit})"
            self.logger.log(self.level, message)
        else:
            self.logger.error(f"{self.label} failed after {elapsed:.3f}s")


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    unit: str = "rows",
) -> Iterator[_Timer]:
    """Time the wrapped block and log its outcome.

    Args:
        label: Description of the operation being timed
        logger: Logger instance to use (defaults to "finac.timer")
        level: Logging level for the success message
        unit: Unit reported next to ``timer.count`` when it is set
    """
    timer = _Timer(label=label, logger=logger or logging.getLogger("finac.timer"), level=level, unit=unit)
    try:
        yield timer
    except Exception:
        timer.finish(success=False)
        raise
    else:
        timer.finish(success=True)
