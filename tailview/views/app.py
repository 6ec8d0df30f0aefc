"""The viewer application: input loop, background completions and drawing"""

import logging

from tailview.input_dispatcher import InputDispatcher
from tailview.models.session import Page, SessionState
from tailview.terminal import KeyEvent, TerminalDriver
from tailview.viewmodels.date_filter import DateFilterController, Reload
from tailview.viewmodels.pagination import Fetch, PaginationController
from tailview.viewmodels.search import SearchController
from tailview.viewmodels.status import StatusLine
from tailview.viewmodels.tasks import BackgroundTasks, TaskRunner
from tailview.views.viewport import ViewportRenderer

logger = logging.getLogger(__name__)

# How long to wait for a key before applying background results
POLL_INTERVAL = 0.1


class App:  # pylint: disable=too-many-instance-attributes
    """Main application class"""

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        terminal: TerminalDriver,
        initial_page: Page,
        fetch: Fetch,
        reload: Reload,
        with_color: bool = True,
        tasks: TaskRunner | None = None,
    ) -> None:
        if not initial_page.entries:
            raise ValueError("the viewer needs at least one entry to show")

        self._terminal = terminal
        self._tasks = tasks or BackgroundTasks()
        self._state = SessionState.from_page(initial_page)
        self._state.terminal_size = terminal.size()
        self._needs_redraw = True
        for field in SessionState.FIELDS:
            self._state.register_watcher(field, self._update_needs_redraw)

        status = StatusLine(self._state, self._tasks)
        self._pagination = PaginationController(
            self._state, fetch, self._tasks, status
        )
        self._search = SearchController(self._state, fetch, self._tasks, status)
        self._date_filter = DateFilterController(
            self._state, reload, self._tasks, status, self._search
        )
        self._dispatcher = InputDispatcher(
            self._state,
            terminal,
            self._pagination,
            self._search,
            self._date_filter,
            self._update_needs_redraw,
        )
        self._renderer = ViewportRenderer(with_color)

    @property
    def state(self) -> SessionState:
        """The session state"""
        return self._state

    def _update_needs_redraw(self) -> None:
        self._needs_redraw = True

    def run(self) -> None:
        """Main loop: runs until the user quits or input is closed"""
        logger.info("Viewer started with %d entries", len(self._state.entries))
        try:
            self.draw()
            while True:
                event = self._terminal.read_event(POLL_INTERVAL)
                if not self.handle(event):
                    return
        except EOFError:
            logger.info("Input closed")
        finally:
            self._tasks.shutdown()
            logger.info("Viewer stopped")

    def handle(self, event: KeyEvent | None) -> bool:
        """One loop iteration; returns False when the viewer should quit"""
        self._tasks.process_pending()

        size = self._terminal.size()
        if size != self._state.terminal_size:
            self._state.terminal_size = size

        if event is not None and not self._dispatcher.dispatch(event):
            return False

        if self._needs_redraw:
            self.draw()
        return True

    def draw(self) -> None:
        """Render the whole screen"""
        frame = self._renderer.render(self._state, self._state.terminal_size)
        self._terminal.write(frame)
        self._needs_redraw = False
        self._state.clear_changes()
