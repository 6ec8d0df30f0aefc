"""Tests for the search controller"""

from unittest.mock import Mock

import pytest

from tailview.models.entry import EntryDocument
from tailview.models.session import Page, SearchPhase, SessionMode, SessionState
from tailview.viewmodels.search import SearchController, describe_results
from tailview.viewmodels.status import StatusLine
from tests.infra.factories import make_fetch, make_page
from tests.infra.manual_tasks import ManualTasks


@pytest.fixture(name="tasks")
def tasks_fixture():
    """Manually driven task runner"""
    return ManualTasks()


@pytest.fixture(name="state")
def state_fixture():
    """A browsing session with 20 entries"""
    return SessionState.from_page(make_page(20, has_more=True, cursor="b1"))


def _controller(state, tasks, fetch):
    return SearchController(state, fetch, tasks, StatusLine(state, tasks))


def _timeout_page() -> Page:
    return Page(
        entries=tuple(
            EntryDocument({"message": f"request timeout {i}"}) for i in range(3)
        ),
        has_more=False,
        total=3,
    )


def test_submit_shows_the_search_results(state, tasks):
    """Test that a query switches to the server's results"""
    # Arrange
    fetch = make_fetch(_timeout_page())
    controller = _controller(state, tasks, fetch)
    state.select(7)

    # Act
    controller.submit("timeout")
    tasks.run_all()

    # Assert
    fetch.assert_called_once_with("", "timeout")
    assert state.mode == SessionMode.SEARCHING
    assert [entry.message for entry in state.entries] == [
        "request timeout 0",
        "request timeout 1",
        "request timeout 2",
    ]
    assert state.current_index == 0
    assert state.search.phase == SearchPhase.RESULTS
    assert state.search.matches == (0, 1, 2)
    assert state.status == "Found 3 of 3 results - Esc to clear"


def test_submit_resets_view_state_while_searching(state, tasks):
    """Test that the search starts collapsed, at the top, marked as searching"""
    # Arrange
    controller = _controller(state, tasks, make_fetch(_timeout_page()))
    state.toggle_expanded(0)

    # Act
    controller.submit("timeout")

    # Assert
    assert state.search.phase == SearchPhase.SEARCHING
    assert state.search.pagination.loading
    assert not state.expanded
    assert not state.entries
    assert state.status == "Searching for 'timeout'..."


def test_submit_with_no_matches(state, tasks):
    """Test the no-matches phase and message"""
    # Arrange
    controller = _controller(state, tasks, make_fetch(Page()))

    # Act
    controller.submit("nothing")
    tasks.run_all()

    # Assert
    assert state.search.phase == SearchPhase.NO_MATCHES
    assert state.mode == SessionMode.SEARCHING
    assert state.status == "No matches for 'nothing' (Esc: clear)"


def test_clear_restores_browsing(state, tasks):
    """Test that clearing shows the untouched browse entries again"""
    # Arrange
    controller = _controller(state, tasks, make_fetch(_timeout_page()))
    state.select(7)
    controller.submit("timeout")
    tasks.run_all()

    # Act
    controller.clear()

    # Assert
    assert state.mode == SessionMode.BROWSING
    assert len(state.entries) == 20
    assert state.current_index == 7
    assert state.search.phase == SearchPhase.IDLE
    assert state.status == "Search cleared - back to normal mode"


def test_empty_query_clears_the_search(state, tasks):
    """Test that submitting a blank query leaves search mode"""
    # Arrange
    fetch = make_fetch(_timeout_page())
    controller = _controller(state, tasks, fetch)
    controller.submit("timeout")
    tasks.run_all()

    # Act
    controller.submit("   ")

    # Assert
    assert not state.search.active
    fetch.assert_called_once()


def test_empty_query_without_search_does_nothing(state, tasks):
    """Test that a blank query while browsing keeps the selection"""
    # Arrange
    controller = _controller(state, tasks, Mock())
    state.select(4)

    # Act
    controller.submit("")

    # Assert
    assert state.current_index == 4
    assert state.status == ""


def test_results_of_a_replaced_query_are_discarded(state, tasks):
    """Test that only the latest query's results are shown"""
    # Arrange
    first = Page(entries=(EntryDocument({"message": "old"}),))
    second = Page(entries=(EntryDocument({"message": "new"}),))
    fetch = make_fetch(first, second)
    controller = _controller(state, tasks, fetch)

    # Act
    controller.submit("old")
    controller.submit("new")
    tasks.run_all()

    # Assert
    assert [entry.message for entry in state.entries] == ["new"]
    assert state.search.query == "new"


def test_results_arriving_after_clear_are_discarded(state, tasks):
    """Test that a cleared search does not come back with late results"""
    # Arrange
    controller = _controller(state, tasks, make_fetch(_timeout_page()))
    controller.submit("timeout")

    # Act
    controller.clear()
    tasks.run_all()

    # Assert
    assert state.mode == SessionMode.BROWSING
    assert not state.search_entries


def test_maybe_load_more_appends_results(state, tasks):
    """Test that scrolling near the end loads the next page of results"""
    # Arrange
    fetch = make_fetch(
        make_page(6, has_more=True, cursor="s1"),
        make_page(4, start=6, has_more=False, total=10),
    )
    controller = _controller(state, tasks, fetch)
    controller.submit("message")
    tasks.run_all()
    state.select(3)

    # Act
    started = controller.maybe_load_more()
    tasks.run_all()

    # Assert
    assert started
    assert fetch.call_args.args == ("s1", "message")
    assert len(state.entries) == 10
    assert state.search.matches == tuple(range(10))
    assert not state.search.pagination.has_more
    assert len(state.browse_entries) == 20
    assert state.status == "Loaded 4 more results (10 total)"


def test_search_error_is_reported(state, tasks):
    """Test that a failed search shows the error and stops loading"""
    # Arrange
    controller = _controller(state, tasks, Mock(side_effect=RuntimeError("503")))

    # Act
    controller.submit("timeout")
    tasks.run_all()

    # Assert
    assert state.status == "Search error: 503"
    assert not state.loading


@pytest.mark.parametrize(
    "count, page, expected",
    [
        (3, Page(total=3), "Found 3 of 3 results - Esc to clear"),
        (
            200,
            Page(has_more=True, next_cursor="c"),
            "Found 200+ results - scroll down to load more - Esc to clear",
        ),
        (2, Page(), "Found 2 results - Esc to clear"),
    ],
)
def test_describe_results(count, page, expected):
    """Test the status text announcing search results"""
    assert describe_results(count, page) == expected
