"""Markdown rendering and other filters available to templates."""

import re
from datetime import datetime
from typing import Callable
from xml.etree.ElementTree import Element

from markdown import Markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor
from markupsafe import Markup

# Pattern for page links: [[/url/path/]] or [[/url/path/|Display Text]]
PAGE_LINK_PATTERN = r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]"

# Pattern for strikethrough: ~~text~~
# Group 2 must contain the text (SimpleTagInlineProcessor expectation)
STRIKETHROUGH_PATTERN = r"(~~)(.*?)~~"


class StrikethroughExtension(Extension):
    """Markdown extension for ~~strikethrough~~ text."""

    def extendMarkdown(self, md: Markdown) -> None:
        """Add strikethrough pattern to markdown parser."""
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(STRIKETHROUGH_PATTERN, "del"),
            "strikethrough",
            50,
        )


class PageLinkInlineProcessor(InlineProcessor):
    """Inline processor for links to other pages of the site."""

    def __init__(self, pattern: str, md: Markdown, page_exists: Callable[[str], bool]):
        super().__init__(pattern, md)
        self.page_exists = page_exists

    def handleMatch(self, m: re.Match, data: str) -> tuple[Element | None, int, int]:
        """Convert page link match to HTML anchor element."""
        target = m.group(1).strip()
        display_text = m.group(2)
        if display_text:
            display_text = display_text.strip()
        else:
            display_text = target

        el = Element("a")
        el.text = display_text
        el.set("href", target)

        if self.page_exists(target):
            el.set("class", "page-link")
        else:
            el.set("class", "page-link page-link-missing")

        return el, m.start(0), m.end(0)


class PageLinkExtension(Extension):
    """Markdown extension for [[/page/links/]]."""

    def __init__(self, page_exists: Callable[[str], bool] | None = None, **kwargs):
        self.page_exists = page_exists or (lambda x: True)
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:
        """Add page link pattern to markdown parser."""
        md.inlinePatterns.register(
            PageLinkInlineProcessor(PAGE_LINK_PATTERN, md, self.page_exists),
            "page_link",
            75,
        )


def create_parser(page_exists: Callable[[str], bool] | None = None) -> Markdown:
    """Create a Markdown parser with page link support.

    Args:
        page_exists: Callback to check if a URL path names a page.
                    Used to style missing page links differently.

    Returns:
        Configured Markdown parser instance.
    """
    return Markdown(
        extensions=[
            "extra",  # Includes: abbreviations, attr_list, def_list, fenced_code, footnotes, md_in_html, tables
            "sane_lists",
            "smarty",
            "pymdownx.tasklist",
            StrikethroughExtension(),
            PageLinkExtension(page_exists=page_exists),
        ]
    )


def render_markdown(
    content: str | None,
    page_exists: Callable[[str], bool] | None = None,
) -> Markup:
    """Render Markdown (with page links) to HTML safe for templates."""
    if not content:
        return Markup("")
    return Markup(create_parser(page_exists).convert(str(content)))


def timeago_filter(dt: datetime | None) -> str:
    """Convert datetime to relative time string."""
    if dt is None:
        return ""
    now = datetime.now()
    diff = now - dt
    seconds = diff.total_seconds()
    if seconds < 60:
        return "just now"
    elif seconds < 3600:
        m = int(seconds // 60)
        return f"{m}m ago"
    elif seconds < 86400:
        h = int(seconds // 3600)
        return f"{h}h ago"
    elif seconds < 604800:
        d = int(seconds // 86400)
        return f"{d}d ago"
    else:
        return dt.strftime("%Y-%m-%d")
