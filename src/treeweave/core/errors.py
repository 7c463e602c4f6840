"""Treeweave exception hierarchy.

Every failure that leaves the core is one of the ``HTTPError`` kinds below,
so the web layer only has to map a closed set of errors to responses.
"""

from markupsafe import Markup, escape


class TreeweaveError(Exception):
    """Base for all treeweave-specific errors."""


class HTTPError(TreeweaveError):
    """An error that maps directly to an HTTP status code.

    ``detail`` is shown to the visitor. For ``NotFound`` and ``Forbidden`` it
    is the requested path as plain text; for ``InternalServerError`` it is an
    HTML message that should point the site's author toward the fix.
    """

    status: int = 500
    kind: str = "internal_server_error"
    detail_is_html: bool = False

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

    @property
    def title(self) -> str:
        return self.kind.replace("_", " ").title()

    def html(self) -> Markup:
        """The detail as markup for error templates."""
        if self.detail_is_html:
            return Markup(self.detail)
        return escape(self.detail)


class NotFound(HTTPError):  # noqa: N818
    """404: the path does not correspond to an accessible directory."""

    status = 404
    kind = "not_found"


class Forbidden(HTTPError):  # noqa: N818
    """403: the path exists but may not be read."""

    status = 403
    kind = "forbidden"


class InternalServerError(HTTPError):
    """500: the request could not be fulfilled without repairing the site."""

    status = 500
    kind = "internal_server_error"
    detail_is_html = True


class Misconfiguration(InternalServerError):
    """A page type or type map declared by the site's author is invalid."""
