"""Cooperative cancellation for long-running analysis runs."""

import threading

from src.terrain.exceptions import AnalysisCancelledError


class CancellationToken:
    """
    Flag shared between a caller and a running analysis.

    The analysis checks the token between tiles and before each heavy
    stage; cancelling never interrupts a stage halfway through.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            raise AnalysisCancelledError(f"Analysis cancelled{' during ' + stage if stage else ''}")
