"""Treeweave FastAPI application."""

import logging
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from treeweave.config import settings
from treeweave.core.errors import HTTPError
from treeweave.core.rendering import Renderer
from treeweave.core.site import Site

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configure logging and report the served site."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(
        "Serving %s with templates from %s (%d page types)",
        site.root,
        site.template_dir,
        len(site.registry.names()),
    )
    yield


# Initialize app
app = FastAPI(
    title=settings.app_title,
    debug=settings.debug,
    lifespan=lifespan,
)

# Initialize site and templates
site = Site(
    settings.root_dir,
    template_dir=settings.template_dir,
    page_types_dir=settings.page_types_dir,
    type_map_file=settings.type_map_file,
)
templates = Jinja2Templates(directory=str(site.template_dir))
renderer = Renderer(site, templates.env, suffix=settings.template_suffix)


@app.exception_handler(HTTPError)
async def http_error_handler(request: Request, exc: HTTPError):
    """Render NotFound, Forbidden and InternalServerError responses."""
    if exc.status >= 500:
        logger.warning("%s %s: %s", request.method, request.url.path, exc.detail)
    return HTMLResponse(renderer.render_error(exc), status_code=exc.status)


# Plain def: runs on a worker thread, where blocking on a member-file
# lock is allowed.
@app.api_route("/{path:path}", methods=["GET", "HEAD"])
def weave(request: Request, path: str):
    """Render the page at the requested path."""
    urlpath = "/" + path
    if not urlpath.endswith("/") and site.is_dir(urlpath):
        # Directory pages end in a slash so relative links in them resolve.
        url = quote(urlpath + "/")
        if request.url.query:
            url += "?" + request.url.query
        return RedirectResponse(url=url, status_code=301)

    page = site.page_for(urlpath)
    body = renderer.render(page)
    return Response(content=body, media_type=page.content_type)
