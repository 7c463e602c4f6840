"""Registry of page types known to a site."""

import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, TypeVar

from markupsafe import escape

from treeweave.core.abstract_page import AbstractPage
from treeweave.core.errors import Misconfiguration

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=type)


class UnknownPageType(LookupError):
    """The name is not registered."""


class NotAPageType(TypeError):
    """The name is registered to something that cannot be instantiated as a page."""


class PageTypeRegistry:
    """Maps page type names (``PlainPage``, ``Blog.Post``) to classes."""

    def __init__(self, types: dict[str, Any] | None = None) -> None:
        self._types: dict[str, Any] = dict(types or {})

    def register(self, name: str, page_type: Any) -> None:
        """Register ``page_type`` under ``name``, replacing any earlier entry."""
        self._types[name] = page_type

    def lookup(self, name: str) -> type[AbstractPage]:
        """Return the page class registered as ``name``.

        Raises:
            UnknownPageType: nothing is registered under ``name``.
            NotAPageType: the registered object is not a page class.
        """
        try:
            page_type = self._types[name]
        except KeyError:
            raise UnknownPageType(name) from None
        if not (isinstance(page_type, type) and issubclass(page_type, AbstractPage)):
            raise NotAPageType(name)
        return page_type

    def names(self) -> list[str]:
        """List all registered names."""
        return sorted(self._types)

    def copy(self) -> "PageTypeRegistry":
        return PageTypeRegistry(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def register_module(self, module: ModuleType) -> list[str]:
        """Register every page class defined in ``module``.

        Returns the names that were registered.
        """
        registered = []
        for value in vars(module).values():
            if (
                isinstance(value, type)
                and issubclass(value, AbstractPage)
                and value.__module__ == module.__name__
            ):
                name = value.__dict__.get("type_name", value.__name__)
                self.register(name, value)
                registered.append(name)
        return registered

    def load_directory(self, directory: Path) -> list[str]:
        """Import each ``*.py`` file in ``directory`` and register its pages.

        Subdirectories are not searched. A missing directory is not an error.
        """
        if not directory.is_dir():
            return []
        registered = []
        for source in sorted(directory.glob("*.py")):
            module_name = f"treeweave_page_types_{abs(hash(source))}_{source.stem}"
            spec = importlib.util.spec_from_file_location(module_name, source)
            if spec is None or spec.loader is None:
                continue
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except Exception as exc:
                sys.modules.pop(module_name, None)
                logger.exception("Failed to load page types from %s", source)
                raise Misconfiguration(
                    f"The page types defined in <code>{escape(str(source))}</code> could not be "
                    f"loaded: {escape(str(exc))}"
                ) from exc
            registered.extend(self.register_module(module))
        if registered:
            logger.info(
                "Loaded %d user page type(s) from %s: %s",
                len(registered),
                directory,
                ", ".join(registered),
            )
        return registered


BUILTIN_PAGE_TYPES = PageTypeRegistry()


def register_page_type(name: str) -> Callable[[T], T]:
    """Class decorator registering a built-in page type under ``name``."""

    def decorator(cls: T) -> T:
        cls.type_name = name
        BUILTIN_PAGE_TYPES.register(name, cls)
        return cls

    return decorator
