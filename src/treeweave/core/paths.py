"""Translation between URL paths and filesystem paths.

Two kinds of path appear throughout treeweave. "URL paths" locate resources
on the web site; they are what a browser asks for. "Filesystem paths" locate
directories and files on the server. A ``PathMapper`` converts between the
two for one site root.
"""

import os
import posixpath
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from treeweave.core.errors import Forbidden, NotFound

SLASH = "/"


def clean_path(path: str | os.PathLike) -> str:
    """Lexically normalize a URL path without touching the filesystem.

    Relative paths are made absolute by prefixing ``/``. ``.`` and ``..``
    segments are collapsed, so the result can never climb above ``/``.

        >>> clean_path("../../etc/passwd")
        '/etc/passwd'
        >>> clean_path("/blog/./2024/../")
        '/blog'
    """
    path = os.fspath(path)
    if not path.startswith(SLASH):
        path = SLASH + path
    cleaned = posixpath.normpath(path)
    # POSIX keeps a leading "//" as implementation-defined; URL paths don't.
    return SLASH + cleaned.lstrip(SLASH)


def page_path(path: str | os.PathLike) -> str:
    """Return the canonical path of a directory page (trailing ``/``)."""
    cleaned = clean_path(path)
    if cleaned == SLASH:
        return cleaned
    return cleaned + SLASH


def parent_path(path: str) -> str | None:
    """Return the page path of ``path``'s parent, or None for the root."""
    cleaned = clean_path(path)
    if cleaned == SLASH:
        return None
    return page_path(posixpath.dirname(cleaned))


def ancestors(path: str) -> Iterator[str]:
    """Yield ``path`` and each of its ancestors up to and including ``/``."""
    current: str | None = page_path(path)
    while current is not None:
        yield current
        current = parent_path(current)


def join_path(base: str, relative: str) -> str:
    """Resolve ``relative`` against the URL path ``base``."""
    return clean_path(posixpath.join(base, relative))


class PathMapper:
    """Bidirectional, containment-safe mapping under a fixed root directory."""

    def __init__(self, root: str | os.PathLike):
        root = os.fspath(root)
        if not os.path.isabs(root):
            root = os.path.abspath(root)
        self.root = Path(os.path.normpath(root))

    def url_to_fs(self, urlpath: str | os.PathLike) -> Path:
        """Convert a URL path into a filesystem path inside ``self.root``.

        The input is cleaned before it is joined onto the root, so no amount
        of ``..`` can escape it: ``../../etc/passwd`` maps to
        ``<root>/etc/passwd``. The result need not exist.
        """
        relative = clean_path(urlpath).lstrip(SLASH)
        if not relative:
            return self.root
        return self.root.joinpath(*relative.split(SLASH))

    def fs_to_url(self, fspath: str | os.PathLike) -> str:
        """Convert a filesystem path into a URL path by stripping the root.

        Paths outside the root are returned unchanged, which keeps them
        usable in diagnostic messages.
        """
        fspath = os.fspath(fspath)
        if not os.path.isabs(fspath):
            fspath = os.sep + fspath
        fspath = os.path.normpath(fspath)
        try:
            relative = Path(fspath).relative_to(self.root)
        except ValueError:
            return Path(fspath).as_posix()
        if relative == Path("."):
            return SLASH
        return SLASH + relative.as_posix()

    def is_dir(self, urlpath: str | os.PathLike) -> bool:
        """Whether ``urlpath`` maps to a directory; False if it cannot be checked."""
        try:
            return self.url_to_fs(urlpath).is_dir()
        except (OSError, ValueError):
            return False


@contextmanager
def translate_os_errors(urlpath: str) -> Iterator[None]:
    """Re-raise filesystem failures for ``urlpath`` as HTTP errors."""
    try:
        yield
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFound(urlpath) from exc
    except PermissionError as exc:
        raise Forbidden(urlpath) from exc
    except (OSError, ValueError) as exc:
        # Names too long, symlink loops and embedded NUL bytes.
        raise NotFound(urlpath) from exc
