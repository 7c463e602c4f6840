"""Deciding which page type governs a URL path.

A site uses one of two strategies:

* marker files: a ``=page-type`` file in the page's own directory names its
  type. Failing that, the page's directory and its ancestors (up to the site
  root) are searched for a ``:page-type`` file, which also applies to
  everything below it.
* a type map: an ordered YAML list of ``{pattern, type}`` rules; the first
  pattern found in the page's path decides the type.

Either way ``PlainPage`` is the fallback.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Protocol

import yaml
from markupsafe import escape
from pydantic import TypeAdapter, ValidationError

from treeweave.core.errors import Misconfiguration
from treeweave.core.models import TypeDeclaration, TypeRule
from treeweave.core.paths import PathMapper, ancestors, page_path

logger = logging.getLogger(__name__)

DEFAULT_PAGE_TYPE = "PlainPage"
PRIVATE_MARKER = "=page-type"
INHERITED_MARKER = ":page-type"

_RULES = TypeAdapter(list[TypeRule])


class PageTypeResolver(Protocol):
    def resolve(self, path: str) -> TypeDeclaration: ...


def _read_marker(path: Path) -> str | None:
    try:
        if not os.access(path, os.R_OK) or not path.is_file():
            return None
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError, ValueError):
        return None


class MarkerFileResolver:
    """Resolves page types from marker files in the content tree."""

    def __init__(self, paths: PathMapper, default: str = DEFAULT_PAGE_TYPE):
        self.paths = paths
        self.default = default

    def resolve(self, path: str) -> TypeDeclaration:
        path = page_path(path)
        private = self.paths.url_to_fs(path + PRIVATE_MARKER)
        name = _read_marker(private)
        if name is not None:
            return TypeDeclaration(name=name, source=self.paths.fs_to_url(private))
        for directory in ancestors(path):
            marker = self.paths.url_to_fs(directory + INHERITED_MARKER)
            name = _read_marker(marker)
            if name is not None:
                return TypeDeclaration(name=name, source=self.paths.fs_to_url(marker))
        return TypeDeclaration(name=self.default)


class TypeMap:
    """An ordered list of type rules loaded from a YAML file.

    The rules are cached and reloaded only when the file's modification time
    differs from the one seen at the last load.
    """

    def __init__(self, path: Path, default: str = DEFAULT_PAGE_TYPE):
        self.path = Path(path)
        self.default = default
        self._rules: list[TypeRule] = []
        self._loaded_mtime: int | None = None
        self._lock = threading.Lock()

    def rules(self) -> list[TypeRule]:
        """Return the current rules, reloading them if the file changed."""
        try:
            mtime = self.path.stat().st_mtime_ns
        except OSError as exc:
            raise Misconfiguration(
                f"The type map <code>{escape(str(self.path))}</code> cannot be read: {exc.strerror}."
            ) from exc
        if mtime == self._loaded_mtime:
            return self._rules
        with self._lock:
            if mtime != self._loaded_mtime:
                self._rules = self._load()
                self._loaded_mtime = mtime
                logger.info("Loaded %d type rule(s) from %s", len(self._rules), self.path)
        return self._rules

    def _load(self) -> list[TypeRule]:
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise Misconfiguration(
                f"The type map <code>{escape(str(self.path))}</code> cannot be parsed: {escape(str(exc))}"
            ) from exc
        try:
            return _RULES.validate_python(data)
        except ValidationError as exc:
            raise Misconfiguration(
                f"The type map <code>{escape(str(self.path))}</code> must be a list of "
                f"pattern/type pairs: {escape(str(exc))}"
            ) from exc

    def resolve(self, path: str) -> TypeDeclaration:
        path = page_path(path)
        for rule in self.rules():
            if rule.matches(path):
                return TypeDeclaration(
                    name=rule.type_name,
                    source=f"the rule {rule.pattern!r} of {self.path}",
                )
        return TypeDeclaration(name=self.default)
