"""Lightweight markdown to markup conversion for chat bubbles.

The rules run in a fixed order, each over the whole string and without
recursion. Bold and italic run before the code rules, so emphasis markers
inside backticks are still converted, and a fenced block loses its inner
backticks to the inline-code rule before the fence rule sees it. Output is
inserted into the page as-is; text only ever comes from the conversation's
own participants.
"""

import re
from typing import List, Optional, Pattern, Tuple

MARKUP_RULES: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"`([^`]+)`"), r"<code>\1</code>"),
    (re.compile(r"```([\s\S]*?)```"), r"<pre><code>\1</code></pre>"),
    (re.compile(r"\n"), "<br />"),
]


def render_markup(text: Optional[str]) -> Optional[str]:
    """Render ``text``; the pending placeholder (``None``) renders to ``None``."""
    if text is None:
        return None
    for pattern, replacement in MARKUP_RULES:
        text = pattern.sub(replacement, text)
    return text
