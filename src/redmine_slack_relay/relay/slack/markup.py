"""Textile -> Slack mrkdwn conversion.

Redmine descriptions are written in Textile. Slack understands its own
"mrkdwn" dialect, and attachments also need a plain-text `fallback` for
clients that cannot render markup at all.
"""

from __future__ import annotations

import re

# Spans must be delimited by whitespace (or the string boundary) on both sides,
# so that e-mail addresses and snake_case identifiers are left alone.
_INLINE_CODE = re.compile(r"(?<!\S)@(.+?)@(?!\S)")
_PRE_BLOCK = re.compile(r"<pre>(.*?)</pre>", re.DOTALL | re.IGNORECASE)
_BLANK_LINES = re.compile(r"\n{2,}")

_BOLD = re.compile(r"(?<!\S)\*(.+?)\*(?!\S)")
_ITALIC = re.compile(r"(?<!\S)_(.+?)_(?!\S)")
_FENCE = re.compile(r"```(.*?)```", re.DOTALL)
_PRE_TAG = re.compile(r"</?pre>", re.IGNORECASE)

# Spans can nest (`_@code@_`, `*_both_*`); stripping one exposes the next.
_SPANS = (_INLINE_CODE, _BOLD, _ITALIC)


def render_markup(text: str | None) -> str:
    """Lower Textile to Slack mrkdwn.

    - blank-line runs collapse to a single line break
    - `@code@` becomes `` `code` ``
    - `<pre>block</pre>` becomes a ``` fenced block
    """

    if not text:
        return ""
    result = text.replace("\r\n", "\n")
    result = _BLANK_LINES.sub("\n", result)
    result = _PRE_BLOCK.sub(lambda m: f"```{m.group(1)}```", result)
    return _INLINE_CODE.sub(lambda m: f"`{m.group(1)}`", result)


def strip_markup(text: str | None) -> str:
    """Remove Textile and mrkdwn markup, for the attachment `fallback` text."""

    if not text:
        return ""
    result = _FENCE.sub(r"\1", text)
    result = _PRE_BLOCK.sub(r"\1", result)
    result = _PRE_TAG.sub("", result)
    result = result.replace("`", "")
    # Each substitution shortens the text, so this terminates.
    previous = None
    while result != previous:
        previous = result
        for pattern in _SPANS:
            result = pattern.sub(r"\1", result)
    return result


def slack_link(url: str, title: str | None = None) -> str:
    return f"<{url}|{title}>" if title else f"<{url}>"

