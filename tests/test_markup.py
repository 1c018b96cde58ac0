"""Test suite for chat bubble markup rendering."""

import pytest

from pilot_chat.services.markup import render_markup


@pytest.mark.parametrize(
    "text,expected",
    [
        ("plain text", "plain text"),
        ("**bold**", "<strong>bold</strong>"),
        ("*italic*", "<em>italic</em>"),
        ("run `gcloud init`", "run <code>gcloud init</code>"),
        ("line one\nline two", "line one<br />line two"),
        ("**a** and *b*", "<strong>a</strong> and <em>b</em>"),
    ],
)
def test_render_markup_rules(text, expected):
    assert render_markup(text) == expected


def test_emphasis_runs_before_code_spans():
    """Bold inside backticks is converted before the code span is built."""
    rendered = render_markup("**a** `b**c**` ")
    assert rendered == "<strong>a</strong> <code>b<strong>c</strong></code> "


def test_fenced_block_is_consumed_by_inline_code_rule():
    """The inline rule claims the inner backticks of a fence first."""
    rendered = render_markup("```py\nx = 1\n```")
    assert rendered == "``<code>py<br />x = 1<br /></code>``"


def test_unpaired_bold_markers_become_empty_emphasis():
    """Bold does not cross lines, so the italic rule takes each ``**`` pair."""
    assert render_markup("**a\nb**") == "<em></em>a<br />b<em></em>"


def test_pending_placeholder_renders_to_none():
    assert render_markup(None) is None
