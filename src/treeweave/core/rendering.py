"""Rendering pages with Jinja2 templates.

The template for a page is found by ``TemplateResolver``; the optional layout
is found the same way under ``:layouts/``. The page template is rendered with
``page`` and ``site`` in its context, and the layout (if any) receives the
same context plus the rendered page as ``content``.
"""

import logging
import os
import traceback
from pathlib import Path

from jinja2 import Environment, TemplateNotFound, TemplateSyntaxError, pass_context
from jinja2.runtime import Context
from markupsafe import Markup, escape

from treeweave.core.abstract_page import AbstractPage
from treeweave.core.errors import Forbidden, HTTPError, InternalServerError, NotFound
from treeweave.core.parser import render_markdown, timeago_filter
from treeweave.core.paths import SLASH, join_path
from treeweave.core.site import Site
from treeweave.core.templates import TemplateResolver, type_name_of

logger = logging.getLogger(__name__)

ERROR_FALLBACK = (
    "<!DOCTYPE html>"
    "<html><head><meta charset='utf-8' /><title>{title}</title></head>"
    "<body><h1>{title}</h1><p>{message}</p></body></html>"
)


class Renderer:
    """Renders the pages of ``site`` with the templates of ``environment``."""

    def __init__(self, site: Site, environment: Environment, suffix: str = ".html"):
        self.site = site
        self.env = environment
        self.templates = TemplateResolver(self.template_exists, suffix)
        self.env.globals["template_for"] = self.templates.template_for
        self.env.filters["markdown"] = self.markdown
        self.env.filters["timeago"] = timeago_filter

    def template_exists(self, name: str) -> bool:
        if self.env.loader is None:
            return False
        try:
            self.env.loader.get_source(self.env, name)
        except TemplateNotFound:
            return False
        return True

    def page_exists(self, urlpath: str) -> bool:
        return self.site.is_dir(urlpath)

    @pass_context
    def markdown(self, context: Context, content: str | None) -> Markup:
        """Render Markdown; page links resolve against the page being rendered."""
        page = context.get("page")
        base = page.path if page is not None else SLASH
        return render_markdown(
            content, page_exists=lambda target: self.page_exists(join_path(base, target))
        )

    def render(self, page: AbstractPage) -> str:
        """Render ``page`` within its layout.

        Raises:
            InternalServerError: no template fits the page, or the template
                failed; the message names the template file and line.
            NotFound, Forbidden: the template touched a missing or
                unreadable file.
        """
        template = self.templates.template_for(page)
        if template is None:
            raise InternalServerError(
                "This site's author did not provide a template for "
                f"<code>{escape(type_name_of(type(page)))}</code>, nor is there a "
                "default template."
            )
        context = {"page": page, "site": self.site}
        try:
            body = self.env.get_template(template).render(context)
            layout = self.templates.layout_for(page)
            if layout is not None:
                body = self.env.get_template(layout).render(context, content=Markup(body))
        except HTTPError:
            raise
        except TemplateSyntaxError as exc:
            raise InternalServerError(
                self._located(exc.filename or exc.name, exc.lineno, exc.message or str(exc))
            ) from exc
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise NotFound(str(exc)) from exc
        except PermissionError as exc:
            raise Forbidden(str(exc)) from exc
        except Exception as exc:
            logger.exception("Rendering %s with %s failed", page.path, template)
            location = self._template_frame(exc)
            if location is None:
                raise InternalServerError(escape(str(exc))) from exc
            raise InternalServerError(self._located(*location, str(exc))) from exc
        return body

    def render_error(self, error: HTTPError) -> str:
        """Render ``error`` with its ``:<kind>`` template, or a built-in page."""
        name = f":{error.kind}{self.templates.suffix}"
        if self.template_exists(name):
            try:
                return self.env.get_template(name).render(error=error, site=self.site)
            except Exception:
                logger.exception("Error template %s failed", name)
        return ERROR_FALLBACK.format(title=error.title, message=error.html())

    def _located(self, filename: str | None, lineno: int | None, message: str) -> str:
        where = escape(self.site.fs_to_url(filename)) if filename else "a template"
        return f"In <code>{where}</code>, line {lineno}: {escape(message)}"

    def _template_frame(self, exc: BaseException) -> tuple[str, int | None] | None:
        """The innermost traceback frame that lies in a template file."""
        template_dir = os.path.abspath(self.site.template_dir)
        for frame in reversed(traceback.extract_tb(exc.__traceback__)):
            filename = os.path.abspath(frame.filename)
            if Path(filename).is_relative_to(template_dir):
                return filename, frame.lineno
        return None
