"""Re-entrancy guard for externally reachable mutating operations."""

from collections.abc import Iterator
from contextlib import contextmanager

from scrollpay.exceptions import ReentrantCall


class ReentrancyGuard:
    """Explicit per-component lock held for the full duration of an operation.

    A second entry while the guard is held fails immediately instead of
    waiting; the guard is released on every exit path.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._holder: str | None = None

    @property
    def entered(self) -> bool:
        return self._holder is not None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self._holder is not None:
            raise ReentrantCall(
                f"{self._name}.{operation} called while {self._holder} is in flight"
            )
        self._holder = operation
        try:
            yield
        finally:
            self._holder = None
