"""Markdown to HTML rendering for comment bodies."""

from __future__ import annotations

from typing import Protocol

import markdown
import nh3

_EXTENSIONS = ("fenced_code", "nl2br", "sane_lists")

ALLOWED_TAGS = frozenset(
    {
        "a",
        "b",
        "blockquote",
        "br",
        "code",
        "del",
        "em",
        "hr",
        "i",
        "li",
        "ol",
        "p",
        "pre",
        "strong",
        "ul",
    }
)
ALLOWED_ATTRIBUTES = {"a": {"href", "title"}}
ALLOWED_URL_SCHEMES = frozenset({"http", "https", "mailto"})


class MarkupRenderer(Protocol):
    def render(self, text: str) -> str:
        ...


def _build(extensions: list[str]) -> markdown.Markdown:
    md = markdown.Markdown(extensions=extensions, output_format="html")
    # Raw HTML from commenters is shown literally, never interpreted.
    md.preprocessors.deregister("html_block")
    md.inlinePatterns.deregister("html")
    return md


def sanitize_html(html: str) -> str:
    """Keep only the formatting tags comments use and http(s)/mailto links."""
    return nh3.clean(
        html,
        tags=set(ALLOWED_TAGS),
        attributes={tag: set(names) for tag, names in ALLOWED_ATTRIBUTES.items()},
        url_schemes=set(ALLOWED_URL_SCHEMES),
        link_rel="nofollow noopener noreferrer",
    )


class MarkdownRenderer:
    """Renders commenter markdown, then strips anything outside the allowlist."""

    def __init__(self, extensions: tuple[str, ...] = _EXTENSIONS) -> None:
        self.extensions = list(extensions)

    def render(self, text: str) -> str:
        return sanitize_html(_build(self.extensions).convert(text))
