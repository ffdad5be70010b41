"""Best-effort cancellation shared between the caller and the pipeline thread."""

import threading
from typing import Optional

from viz_advisor.core.exceptions import AnalysisCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag checked between pipeline passes.

    Cancellation is cooperative: a pass already running finishes its current
    unit of work, and the next ``raise_if_cancelled`` call aborts the run.
    A token created with a ``parent`` also counts as cancelled when the
    parent is, which lets the engine cancel its own run without touching the
    caller's token.

    Example:
        >>> token = CancellationToken()
        >>> task = asyncio.create_task(engine.analyze(records, cancel_token=token))
        >>> token.cancel()
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self, stage: Optional[str] = None) -> None:
        """
        Raise if cancellation was requested.

        Raises:
            AnalysisCancelledError: If this token or its parent was cancelled
        """
        if self.cancelled:
            raise AnalysisCancelledError(stage)
