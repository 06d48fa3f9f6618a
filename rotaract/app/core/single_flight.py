from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class ActionGuard:
    """In-flight flag for one user-triggered mutating action.

    Callers check :attr:`in_flight` before starting and wrap the work in
    :meth:`hold`; the flag is cleared on exit whatever the outcome.
    """

    def __init__(self) -> None:
        self.in_flight = False

    @contextmanager
    def hold(self) -> Iterator[None]:
        if self.in_flight:
            raise RuntimeError("Action already in progress")
        self.in_flight = True
        try:
            yield
        finally:
            self.in_flight = False
