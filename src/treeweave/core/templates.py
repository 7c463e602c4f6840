"""Choosing the template that renders a page type."""

import re
from typing import Callable

from treeweave.core.abstract_page import AbstractPage

LAYOUT_PREFIX = ":layouts/"
DEFAULT_TEMPLATE = ":default"

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def underscore(type_name: str) -> str:
    """Turn a page type name into a template name.

        >>> underscore("PlainPage")
        'plain_page'
        >>> underscore("Blog.RSSFeed")
        'blog/rss_feed'
    """
    name = type_name.replace(".", "/")
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.replace("-", "_").lower()


def type_name_of(page_type: type) -> str:
    return page_type.__dict__.get("type_name", page_type.__name__)


def page_type_ancestry(page_type: type[AbstractPage]) -> list[type[AbstractPage]]:
    """The page type followed by its page-type superclasses, nearest first.

    Capability mixins are skipped; the walk stops before ``AbstractPage``.
    """
    return [
        klass
        for klass in page_type.__mro__
        if isinstance(klass, type)
        and issubclass(klass, AbstractPage)
        and klass is not AbstractPage
    ]


class TemplateResolver:
    """Finds the most specific template available for a page type.

    Args:
        exists: Tells whether a template of the given name exists.
        suffix: File suffix appended to every candidate name.
    """

    def __init__(self, exists: Callable[[str], bool], suffix: str = ".html"):
        self.exists = exists
        self.suffix = suffix

    def candidates(self, page_type: type[AbstractPage], prefix: str = "") -> list[str]:
        """Every template name tried for ``page_type``, in order."""
        names = [
            f"{prefix}{underscore(type_name_of(klass))}{self.suffix}"
            for klass in page_type_ancestry(page_type)
        ]
        names.append(f"{prefix}{DEFAULT_TEMPLATE}{self.suffix}")
        return names

    def template_for(
        self, page: AbstractPage | type[AbstractPage], prefix: str = ""
    ) -> str | None:
        """Return the template for ``page`` (a page or a page class).

        The page's own type is tried first, then each superclass in turn,
        then ``:default``. Returns None when none of them exists. With
        ``prefix=":layouts/"`` the same walk finds the page's layout.
        """
        page_type = page if isinstance(page, type) else type(page)
        for name in self.candidates(page_type, prefix):
            if self.exists(name):
                return name
        return None

    def layout_for(self, page: AbstractPage | type[AbstractPage]) -> str | None:
        return self.template_for(page, LAYOUT_PREFIX)
