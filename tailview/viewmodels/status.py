"""Transient status messages"""

from tailview.models.session import SessionState
from tailview.viewmodels.tasks import TaskRunner

LOAD_STATUS_DURATION = 2.0
FILTER_STATUS_DURATION = 3.0


class StatusLine:
    """Shows messages on the status row and clears them after a while"""

    def __init__(self, state: SessionState, tasks: TaskRunner) -> None:
        self._state = state
        self._tasks = tasks

    @property
    def message(self) -> str:
        """The message currently shown"""
        return self._state.status

    def show(self, message: str, duration: float | None = None) -> None:
        """Show a message, clearing it after duration seconds if one is given"""
        self._state.status = message
        if duration is not None:
            self._tasks.call_later(duration, lambda: self._clear(message))

    def _clear(self, message: str) -> None:
        # A newer message must survive the timer of an older one
        if self._state.status == message:
            self._state.status = ""
