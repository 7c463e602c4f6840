"""Filesystem-backed page types.

A page lives in a directory of the site's root. Its attributes are stored one
per file in that directory: the ``title`` attribute of ``/about/`` is the
content of ``<root>/about/@title``. Each page type declares the attributes it
offers, and their defaults, in a ``FILE_ATTRIBUTES`` table.
"""

import functools
import logging
import os
import posixpath
import stat
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from markupsafe import Markup

from treeweave.core.abstract_page import AbstractPage
from treeweave.core.errors import Forbidden, HTTPError, NotFound
from treeweave.core.paths import page_path, parent_path, translate_os_errors
from treeweave.core.registry import register_page_type

if TYPE_CHECKING:
    from treeweave.core.site import Site

logger = logging.getLogger(__name__)

ATTRIBUTE_PREFIX = "@"
PUBLICATION_DATE_FILE = ":publication-date"

# Directories starting with one of these are never pages.
RESERVED_PREFIXES = (".", ":", "=", "@")


def chomp(text: str) -> str:
    """Remove one trailing line ending, like reading a line from a file."""
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith(("\n", "\r")):
        return text[:-1]
    return text


def read_sidecar(path: Path, default: Any = None) -> Any:
    """Return the content of a sidecar file, or ``default`` if unreadable."""
    try:
        return Markup(chomp(path.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError):
        return default


def _is_child_entry(entry: os.DirEntry) -> bool:
    if entry.name.startswith(RESERVED_PREFIXES):
        return False
    try:
        return entry.is_dir()
    except OSError:
        # Symlink loops and entries that cannot be inspected.
        return False


@functools.total_ordering
@register_page_type("Base")
class Base(AbstractPage):
    """Base class for page types whose data are stored in the filesystem.

    It is not very useful as a page type by itself, but every page type that
    follows the sidecar-file conventions should derive from it.
    """

    FILE_ATTRIBUTES: ClassVar[dict[str, Any]] = {}

    def __init__(self, path: str, site: "Site"):
        self._path = page_path(path)
        self._site = site
        self._attributes: dict[str, Any] = {}
        self._fspath = site.url_to_fs(self._path)
        with translate_os_errors(self._path):
            info = os.stat(self._fspath)
        if not stat.S_ISDIR(info.st_mode):
            raise NotFound(self._path)
        if not os.access(self._fspath, os.R_OK | os.X_OK):
            raise Forbidden(self._path)

    @property
    def path(self) -> str:
        return self._path

    urlpath = path

    @property
    def site(self) -> "Site":
        return self._site

    @property
    def fspath(self) -> Path:
        """The directory that holds this page's files."""
        return self._fspath

    @property
    def content_type(self) -> str:
        """Override for page types that don't render into HTML."""
        return "text/html"

    @classmethod
    def file_attribute_table(cls) -> dict[str, Any]:
        """Attribute names and defaults declared by this type and its bases."""
        table: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            table.update(klass.__dict__.get("FILE_ATTRIBUTES", {}))
        return table

    def file_attributes(self) -> list[str]:
        return sorted(self.file_attribute_table())

    def attribute(self, name: str) -> Any:
        """Read the file-backed attribute ``name``.

        The value is read once per page object. A missing or unreadable file
        yields the attribute's declared default.
        """
        if name in self._attributes:
            return self._attributes[name]
        table = self.file_attribute_table()
        if name not in table:
            raise KeyError(f"{type(self).__name__} has no file attribute {name!r}")
        value = read_sidecar(self.sidecar_path(name), table[name])
        self._attributes[name] = value
        return value

    def sidecar_path(self, name: str) -> Path:
        return self._fspath / f"{ATTRIBUTE_PREFIX}{name}"

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails, i.e. for declared attributes.
        if not name.startswith("_") and name in type(self).file_attribute_table():
            return self.attribute(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    @property
    def mtime(self) -> datetime:
        """When one of the page's attribute files was last modified.

        Falls back to the directory's own modification time when the page has
        no attribute files.
        """
        times = []
        for name in self.file_attribute_table():
            try:
                times.append(self.sidecar_path(name).stat().st_mtime)
            except OSError:
                continue
        if not times:
            with translate_os_errors(self._path):
                times.append(self._fspath.stat().st_mtime)
        return datetime.fromtimestamp(max(times))

    @property
    def parent(self) -> "AbstractPage | None":
        parent = parent_path(self._path)
        if parent is None:
            return None
        return self._site.page_for(parent)

    def children(self) -> list[AbstractPage]:
        """Pages found directly below this one, in directory-name order.

        Directories that vanish while being listed, that have a reserved name
        or that fail to load as pages are skipped, as are ``Ignore`` pages.
        """
        try:
            with os.scandir(self._fspath) as entries:
                names = sorted(entry.name for entry in entries if _is_child_entry(entry))
        except FileNotFoundError:
            return []
        except PermissionError as exc:
            raise Forbidden(self._path) from exc

        children = []
        for name in names:
            child_path = page_path(posixpath.join(self._path, name))
            try:
                child = self._site.page_for(child_path)
            except HTTPError as exc:
                logger.debug("Skipping child %s: %s", child_path, exc)
                continue
            if isinstance(child, Ignore):
                continue
            children.append(child)
        return children

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AbstractPage):
            return NotImplemented
        return self.site == other.site and self.path == other.path

    def __hash__(self) -> int:
        return hash((self._site, self._path))

    def __lt__(self, other: object) -> bool:
        if isinstance(other, AbstractPage):
            return self.path < other.path
        if isinstance(other, str):
            return self.path < other
        return NotImplemented

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} path={self._path!r} "
            f"file_attributes={self.file_attributes()!r}>"
        )

    def __str__(self) -> str:
        return self._path


class NewestFirst:
    """Capability for pages sorted by publication time, newest first.

    Mix in ahead of a ``Base`` subclass.
    """

    @property
    def pubtime(self) -> datetime | None:
        """When the page was published.

        This is the modification time of the page's ``:publication-date``
        file if there is one, otherwise the page's ``mtime``. None when
        neither can be read.
        """
        try:
            return datetime.fromtimestamp(
                (self.fspath / PUBLICATION_DATE_FILE).stat().st_mtime
            )
        except FileNotFoundError:
            pass
        except OSError:
            return None
        try:
            return self.mtime
        except HTTPError:
            return None

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, AbstractPage):
            return super().__lt__(other)
        mine = self.pubtime
        if isinstance(other, NewestFirst):
            theirs = other.pubtime
        else:
            try:
                theirs = getattr(other, "mtime", None)
            except HTTPError:
                theirs = None
        if mine is None or theirs is None or mine == theirs:
            return super().__lt__(other)
        return mine > theirs


@register_page_type("PlainPage")
class PlainPage(Base):
    """The default page type: a ``title`` and a chunk of ``content``.

    ``title`` usually goes into the HTML ``<title>``; ``content`` can hold
    whatever HTML fits in the template's body.
    """

    FILE_ATTRIBUTES = {"title": None, "content": None}


@register_page_type("FrontPage")
class FrontPage(PlainPage):
    """A plain page with its own template name, for a site's home page."""


@register_page_type("Ignore")
class Ignore(Base):
    """Marks a directory that is not a page; its parent doesn't list it."""

    def children(self) -> list[AbstractPage]:
        return []
