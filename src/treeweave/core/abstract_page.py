"""The interface every page type implements.

A page type decides which attributes a template can read from ``page``,
the content type the template must produce, and (through its class
hierarchy) which template renders it.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Iterable

if TYPE_CHECKING:
    from treeweave.core.site import Site


class AbstractPage(ABC):
    """Abstract root of all page types.

    Pages are built by ``Site.page_for`` with a URL path and the site; they
    are cheap request-scoped views over the filesystem.
    """

    type_name: ClassVar[str] = "AbstractPage"

    @property
    @abstractmethod
    def path(self) -> str:
        """The URL path that identifies this page."""

    @property
    @abstractmethod
    def site(self) -> "Site":
        """The site to which this page belongs."""

    @property
    @abstractmethod
    def parent(self) -> "AbstractPage | None":
        """The page for the parent of ``path``, or None at the root."""

    @abstractmethod
    def children(self) -> Iterable["AbstractPage"]:
        """The pages found directly below this page."""

    @property
    @abstractmethod
    def content_type(self) -> str:
        """The MIME type the page's template produces."""
