"""Tests for the ANSI helpers"""

from tailview.helpers.ansi import (
    Color,
    Segment,
    plain_text,
    render_segments,
    slice_segments,
    style,
    truncate,
)


def test_style_wraps_text_in_color_codes():
    """Test that style adds the SGR code and a reset"""
    assert style("boom", Color.ERROR) == "\x1b[31mboom\x1b[0m"


def test_style_leaves_text_alone_when_disabled():
    """Test that style returns the text unchanged without color"""
    assert style("boom", Color.ERROR, enabled=False) == "boom"
    assert style("boom", None) == "boom"


def test_slice_segments_keeps_colors_across_boundaries():
    """Test that slicing a line cuts segments but keeps their colors"""
    # Arrange
    segments = [Segment("abc", Color.DIM), Segment("def"), Segment("ghi", Color.INFO)]

    # Act
    result = slice_segments(segments, 2, 7)

    # Assert
    assert result == [Segment("c", Color.DIM), Segment("def"), Segment("g", Color.INFO)]


def test_render_segments_without_color_is_plain_text():
    """Test that rendering without color yields the plain text"""
    # Arrange
    segments = [Segment("12:00", Color.DIM), Segment(" "), Segment("ERROR", Color.ERROR)]

    # Act
    result = render_segments(segments, enabled=False)

    # Assert
    assert result == plain_text(segments) == "12:00 ERROR"


def test_truncate_marks_the_cut_with_an_ellipsis():
    """Test that long text is cut to the width with '...'"""
    assert truncate("abcdefghij", 6) == "abc..."
    assert truncate("short", 10) == "short"
    assert truncate("abcdef", 2) == ".."
