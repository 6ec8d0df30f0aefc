"""Tests for the input dispatcher"""

from unittest.mock import Mock

import pytest

from tailview.helpers.ansi import Size
from tailview.input_dispatcher import InputDispatcher
from tailview.models.entry import EntryDocument
from tailview.models.session import Page, SessionMode, SessionState
from tailview.terminal import Key, KeyEvent
from tailview.viewmodels.date_filter import DateFilterController
from tailview.viewmodels.pagination import PaginationController
from tailview.viewmodels.search import SearchController
from tailview.viewmodels.status import StatusLine
from tests.infra.factories import make_fetch, make_page
from tests.infra.manual_tasks import ManualTasks
from tests.infra.mock_terminal import MockTerminal


class Harness:
    """A dispatcher wired to real controllers and fake collaborators"""

    def __init__(self, page: Page, size: Size = Size(10, 40)) -> None:
        self.state = SessionState.from_page(page)
        self.state.terminal_size = size
        self.tasks = ManualTasks()
        self.terminal = MockTerminal(size)
        self.fetch = Mock(return_value=Page())
        self.reload = Mock(return_value=Page())
        self.needs_redraw = Mock()
        status = StatusLine(self.state, self.tasks)
        self.search = SearchController(self.state, self.fetch, self.tasks, status)
        self.dispatcher = InputDispatcher(
            self.state,
            self.terminal,
            PaginationController(self.state, self.fetch, self.tasks, status),
            self.search,
            DateFilterController(
                self.state, self.reload, self.tasks, status, self.search
            ),
            self.needs_redraw,
        )
        self.state.clear_changes()

    def press(self, key: Key, times: int = 1) -> bool:
        """Dispatch the same key a number of times"""
        result = True
        for _ in range(times):
            result = self.dispatcher.dispatch(KeyEvent(key))
        return result


@pytest.fixture(name="harness")
def harness_fixture():
    """Dispatcher over 20 entries with a 5-row content area"""
    return Harness(make_page(20))


def test_quit_returns_false(harness):
    """Test that q asks the loop to stop"""
    assert harness.press(Key.QUIT) is False
    assert harness.press(Key.DOWN) is True


def test_up_and_down_are_clamped(harness):
    """Test that the selection stays inside the entries"""
    # Act
    harness.press(Key.UP)

    # Assert
    assert harness.state.current_index == 0

    # Act
    harness.press(Key.DOWN, 25)

    # Assert
    assert harness.state.current_index == 19


def test_page_down_and_up_move_by_the_viewport_height(harness):
    """Test paging by the content height"""
    # Act
    harness.press(Key.PAGE_DOWN, 2)

    # Assert
    assert harness.state.current_index == 10

    # Act
    harness.press(Key.PAGE_UP)

    # Assert
    assert harness.state.current_index == 5

    # Act
    harness.press(Key.PAGE_DOWN, 3)

    # Assert
    assert harness.state.current_index == 19


def test_home_and_end(harness):
    """Test jumping to the first and last entry"""
    # Act
    harness.press(Key.END)

    # Assert
    assert harness.state.current_index == 19

    # Act
    harness.press(Key.HOME)

    # Assert
    assert harness.state.current_index == 0


def test_toggle_expand(harness):
    """Test that expanding starts at the top and collapsing forgets scrolling"""
    # Act
    harness.press(Key.TOGGLE_EXPAND)

    # Assert
    assert harness.state.expanded == {0}
    assert harness.state.vertical_scroll == {0: 0}

    # Act
    harness.press(Key.DOWN)
    harness.press(Key.TOGGLE_EXPAND)

    # Assert
    assert not harness.state.expanded
    assert not harness.state.vertical_scroll


def test_down_scrolls_expanded_content_before_moving(harness):
    """Test that j scrolls an expanded entry and moves on at its last line"""
    # Arrange
    harness.press(Key.TOGGLE_EXPAND)

    # Act
    harness.press(Key.DOWN, 3)

    # Assert
    assert harness.state.current_index == 0
    assert harness.state.vertical_scroll[0] == 3

    # Act
    harness.press(Key.DOWN)

    # Assert
    assert harness.state.current_index == 1


def test_up_scrolls_expanded_content_before_moving(harness):
    """Test that k scrolls back up and moves on at the first line"""
    # Arrange
    harness.press(Key.DOWN)
    harness.press(Key.TOGGLE_EXPAND)
    harness.press(Key.DOWN, 2)

    # Act
    harness.press(Key.UP, 2)

    # Assert
    assert harness.state.current_index == 1
    assert harness.state.vertical_scroll[1] == 0

    # Act
    harness.press(Key.UP)

    # Assert
    assert harness.state.current_index == 0


def test_horizontal_scroll_is_clamped_to_the_line():
    """Test that right and left move by 10 within the line length"""
    # Arrange
    harness = Harness(Page(entries=(EntryDocument({"raw_message": "x" * 100}),)))

    # Act
    harness.press(Key.RIGHT, 10)

    # Assert
    assert harness.state.horizontal_scroll[0] == 62

    # Act
    harness.press(Key.LEFT)

    # Assert
    assert harness.state.horizontal_scroll[0] == 52

    # Act
    harness.press(Key.LEFT, 10)

    # Assert
    assert 0 not in harness.state.horizontal_scroll


def test_horizontal_scroll_of_a_short_line_does_nothing(harness):
    """Test that lines narrower than the terminal never scroll"""
    # Act
    harness.press(Key.RIGHT)

    # Assert
    assert not harness.state.horizontal_scroll


def test_next_and_prev_only_work_while_searching(harness):
    """Test that n and N are ignored while browsing"""
    # Act
    harness.press(Key.NEXT)

    # Assert
    assert harness.state.current_index == 0

    # Arrange
    harness.fetch.return_value = make_page(5)
    harness.search.submit("message")
    harness.tasks.run_all()

    # Act
    harness.press(Key.NEXT, 2)
    harness.press(Key.PREV)

    # Assert
    assert harness.state.current_index == 1


def test_escape_clears_the_search(harness):
    """Test that Esc leaves search mode"""
    # Arrange
    harness.fetch.return_value = make_page(5)
    harness.search.submit("message")
    harness.tasks.run_all()

    # Act
    harness.press(Key.ESCAPE)

    # Assert
    assert harness.state.mode == SessionMode.BROWSING


def test_moving_near_the_end_loads_the_active_stream():
    """Test that navigation triggers the browse fetch near the end"""
    # Arrange
    harness = Harness(make_page(10, has_more=True, cursor="c1"))

    # Act
    harness.press(Key.DOWN, 4)
    before = len(harness.tasks.jobs)
    harness.press(Key.DOWN)

    # Assert
    assert before == 0
    assert len(harness.tasks.jobs) == 1
    harness.tasks.run_all()
    harness.fetch.assert_called_once_with("c1", "")


def test_page_down_loads_within_a_viewport_of_the_end():
    """Test that paging down uses the viewport height as the load window"""
    # Arrange
    harness = Harness(make_page(30, has_more=True, cursor="c1"), Size(13, 80))

    # Act
    harness.press(Key.PAGE_DOWN, 2)
    before = len(harness.tasks.jobs)
    harness.press(Key.PAGE_DOWN)

    # Assert
    assert harness.state.current_index == 24
    assert before == 0
    assert len(harness.tasks.jobs) == 1


def test_search_prompt_submits_the_query(harness):
    """Test that / reads a query and starts a search"""
    # Arrange
    harness.terminal.lines = ["timeout"]

    # Act
    harness.press(Key.SLASH_SEARCH)

    # Assert
    assert harness.terminal.prompts == ["Search: "]
    assert harness.state.search.query == "timeout"
    harness.needs_redraw.assert_called_once()


def test_date_prompt_reads_start_and_end(harness):
    """Test that f reads both bounds and reloads"""
    # Arrange
    harness.terminal.lines = ["-2h", "-1h"]
    harness.reload.return_value = make_page(2)

    # Act
    harness.press(Key.DATE_FILTER)
    harness.tasks.run_all()

    # Assert
    assert "Date Range Filter" in harness.terminal.frames[0]
    harness.reload.assert_called_once_with("-2h", "-1h")
    assert harness.state.date_filter.start == "-2h"


def test_plain_characters_are_ignored(harness):
    """Test that unbound characters change nothing"""
    # Act
    result = harness.dispatcher.dispatch(KeyEvent(Key.CHAR, "x"))

    # Assert
    assert result is True
    assert harness.state.current_index == 0
    assert not harness.state.changes
