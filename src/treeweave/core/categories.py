"""Categories and the index that links them to categorized pages.

A ``Categorized`` page lists the URL paths of its categories in its
``@categories`` file. Each ``Category`` page keeps the reverse relation in its
``.members`` file. The reverse side is brought up to date lazily: whenever a
categorized page's categories are read and its ``@categories`` file (or its
directory) changed since the last look, the difference against the
``.categories_since_last_update`` snapshot is applied to the member files.
Edits made straight on disk are picked up the same way.
"""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable

from filelock import FileLock

from treeweave.core.errors import HTTPError
from treeweave.core.pages import PlainPage
from treeweave.core.paths import page_path
from treeweave.core.registry import register_page_type

if TYPE_CHECKING:
    from treeweave.core.site import Site

logger = logging.getLogger(__name__)

MEMBERS_FILE = ".members"
SNAPSHOT_FILE = ".categories_since_last_update"
LOCK_SUFFIX = ".lock"


def read_path_set(path: Path) -> set[str]:
    """Read a newline-delimited list of URL paths; empty if unreadable."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return set()
    return {page_path(line.strip()) for line in text.splitlines() if line.strip()}


def write_path_set(path: Path, paths: Iterable[str], atomic: bool = True) -> None:
    """Write URL paths one per line, sorted.

    With ``atomic`` the list is written to a temporary file that replaces
    ``path``, so concurrent readers never see a partial list.
    """
    text = "".join(f"{p}\n" for p in sorted(paths))
    if not atomic:
        path.write_text(text, encoding="utf-8")
        return
    tmp = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


@register_page_type("Category")
class Category(PlainPage):
    """A page representing a tag; its members are categorized pages."""

    @property
    def members_file(self) -> Path:
        return self.fspath / MEMBERS_FILE

    def members(self) -> set["PlainPage"]:
        """The categorized pages that belong to this category.

        Entries that no longer load as categorized pages are dropped and the
        member file is rewritten without them.
        """
        return self.site.category_index.members(self)


class Categorized:
    """Capability for pages that can belong to categories.

    Mix in ahead of a ``Base`` subclass. The ``@categories`` file holds the
    URL paths of zero or more ``Category`` pages, one per line.
    """

    FILE_ATTRIBUTES = {"categories": ""}

    @property
    def categories_file(self) -> Path:
        return self.sidecar_path("categories")

    @property
    def snapshot_file(self) -> Path:
        return self.fspath / SNAPSHOT_FILE

    def declared_categories(self) -> set[str]:
        """Category paths as currently listed in ``@categories``."""
        return read_path_set(self.categories_file)

    def categories(self) -> set[Category]:
        """The categories of this page, updating their member lists if stale."""
        return self.site.category_index.categories_for(self)


class CategoryIndex:
    """Keeps ``Category`` member files consistent with ``@categories`` files.

    For every categorized page P and category C, C is listed in P's
    ``@categories`` exactly when P is listed in C's ``.members``, as of the
    last time P's categories were read.
    """

    def __init__(self, site: "Site", lock_timeout: float = 10.0):
        self.site = site
        self.lock_timeout = lock_timeout

    def is_stale(self, page: Categorized) -> bool:
        """Whether ``page``'s snapshot is older than its categories.

        Stale when the snapshot is missing, or older than the ``@categories``
        file or the last change to the page's directory.
        """
        try:
            snapshot_mtime = page.snapshot_file.stat().st_mtime_ns
        except OSError:
            return True
        try:
            if snapshot_mtime < page.categories_file.stat().st_mtime_ns:
                return True
        except OSError:
            pass
        try:
            return snapshot_mtime < page.fspath.stat().st_ctime_ns
        except OSError:
            return True

    def reconcile(self, page: Categorized) -> set[str]:
        """Apply changes in ``page``'s categories to the member files.

        Returns the category paths now on record for ``page``. When the
        snapshot is fresh it is returned without touching any member file.
        """
        if not self.is_stale(page):
            logger.debug("Categories of %s are up to date", page.path)
            return read_path_set(page.snapshot_file)

        current = page.declared_categories()
        previous = read_path_set(page.snapshot_file)
        logger.debug(
            "Reconciling categories of %s: %d current, %d previous",
            page.path,
            len(current),
            len(previous),
        )
        for category in self._resolve(current, page):
            self.add(category, page.path)
        for category in self._resolve(previous - current, page):
            self.remove(category, page.path)
        # Rewritten in place; replacing it would bump the directory's ctime.
        write_path_set(page.snapshot_file, current, atomic=False)
        return current

    def categories_for(self, page: Categorized) -> set[Category]:
        return set(self._resolve(self.reconcile(page), page))

    def members(self, category: Category) -> set[Categorized]:
        members = set()
        dangling = set()
        for path in read_path_set(category.members_file):
            member = self._member(path)
            if member is None:
                dangling.add(path)
            else:
                members.add(member)
        if dangling:
            logger.warning(
                "Dropping %d dangling member(s) of %s: %s",
                len(dangling),
                category.path,
                ", ".join(sorted(dangling)),
            )

            def drop_dangling(paths: set[str]) -> set[str]:
                # Checked again under the lock; a page may have been added since.
                return {p for p in paths if p not in dangling or self._member(p) is not None}

            self._update_members(category, drop_dangling)
        return members

    def _member(self, path: str) -> Categorized | None:
        try:
            page = self.site.page_for(path)
        except HTTPError:
            return None
        return page if isinstance(page, Categorized) else None

    def add(self, category: Category, path: str) -> None:
        """Record ``path`` as a member of ``category``."""
        self._update_members(category, lambda paths: paths | {page_path(path)})

    def remove(self, category: Category, path: str) -> None:
        """Remove ``path`` from the members of ``category``."""
        self._update_members(category, lambda paths: paths - {page_path(path)})

    def _update_members(
        self, category: Category, change: Callable[[set[str]], set[str]]
    ) -> None:
        """Load, change and save a member file under its exclusive lock."""
        members_file = category.members_file
        lock = FileLock(f"{members_file}{LOCK_SUFFIX}", timeout=self.lock_timeout)
        with lock:
            before = read_path_set(members_file)
            after = change(before)
            if after != before:
                write_path_set(members_file, after)

    def _resolve(self, paths: Iterable[str], page: Categorized) -> list[Category]:
        categories = []
        for path in sorted(paths):
            try:
                category = self.site.page_for(path)
            except HTTPError as exc:
                logger.warning("Category %s of %s is unavailable: %s", path, page.path, exc)
                continue
            if isinstance(category, Category):
                categories.append(category)
            else:
                logger.warning("%s, listed as a category of %s, is not a Category", path, page.path)
        return categories
