"""The representation of a web site served from a directory tree."""

import logging
import os
from pathlib import Path

from markupsafe import escape

# Imported for their page type registrations.
import treeweave.core.blog  # noqa: F401
from treeweave.core.abstract_page import AbstractPage
from treeweave.core.categories import CategoryIndex
from treeweave.core.errors import Misconfiguration
from treeweave.core.models import TypeDeclaration
from treeweave.core.paths import PathMapper, page_path
from treeweave.core.registry import (
    BUILTIN_PAGE_TYPES,
    NotAPageType,
    PageTypeRegistry,
    UnknownPageType,
)
from treeweave.core.resolver import MarkerFileResolver, PageTypeResolver, TypeMap

logger = logging.getLogger(__name__)


class Site:
    """A web site made out of a file tree.

    Args:
        root: The directory every requested path resolves into.
        template_dir: Directory of the site's templates. Defaults to
            ``templates`` next to ``root``.
        page_types_dir: Directory of Python modules defining extra page
            types. Defaults to ``page-types`` next to ``root``.
        type_map_file: YAML type map. When given, page types are resolved
            from it instead of from marker files.
    """

    def __init__(
        self,
        root: str | os.PathLike,
        template_dir: str | os.PathLike | None = None,
        page_types_dir: str | os.PathLike | None = None,
        type_map_file: str | os.PathLike | None = None,
    ):
        self.paths = PathMapper(root)
        self.root = self.paths.root
        self.template_dir = Path(template_dir) if template_dir else self.root.parent / "templates"
        self.page_types_dir = (
            Path(page_types_dir) if page_types_dir else self.root.parent / "page-types"
        )
        self.registry: PageTypeRegistry = BUILTIN_PAGE_TYPES.copy()
        self.registry.load_directory(self.page_types_dir)
        self.resolver: PageTypeResolver
        if type_map_file is not None:
            self.resolver = TypeMap(Path(type_map_file))
        else:
            self.resolver = MarkerFileResolver(self.paths)
        self.category_index = CategoryIndex(self)

    def url_to_fs(self, urlpath: str | os.PathLike) -> Path:
        return self.paths.url_to_fs(urlpath)

    def fs_to_url(self, fspath: str | os.PathLike) -> str:
        return self.paths.fs_to_url(fspath)

    def is_dir(self, urlpath: str | os.PathLike) -> bool:
        return self.paths.is_dir(urlpath)

    def page_type_for(self, path: str) -> TypeDeclaration:
        """Which page type governs ``path`` and where that was declared."""
        return self.resolver.resolve(path)

    def page_for(self, path: str | os.PathLike) -> AbstractPage:
        """Return the page at the URL path ``path``.

        Raises:
            NotFound: ``path`` is not an accessible directory.
            Forbidden: the directory may not be read.
            Misconfiguration: the declared page type is not valid.
        """
        path = page_path(path)
        declaration = self.page_type_for(path)
        try:
            page_type = self.registry.lookup(declaration.name)
        except UnknownPageType:
            raise self._invalid_type(
                declaration, path, "it does not name a registered page type"
            ) from None
        except NotAPageType:
            raise self._invalid_type(
                declaration, path, "it is not the name of a page class"
            ) from None
        try:
            return page_type(path, self)
        except TypeError as exc:
            raise self._invalid_type(
                declaration, path, "its constructor does not accept parameters correctly"
            ) from exc

    def _invalid_type(
        self, declaration: TypeDeclaration, path: str, reason: str
    ) -> Misconfiguration:
        logger.warning(
            "Invalid page type %r for %s declared in %s", declaration.name, path, declaration.source
        )
        return Misconfiguration(
            f"This site's author specified <code>{escape(repr(declaration.name))}</code> as the "
            f"page type for <code>{escape(path)}</code>, but that is not a valid page type "
            f"because {reason}. This page type was specified in "
            f"<code>{escape(declaration.source)}</code>."
        )

    def __repr__(self) -> str:
        return f"<Site root={str(self.root)!r}>"
