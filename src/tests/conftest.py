"""Shared fixtures for building site trees on disk."""

import os
from pathlib import Path

import pytest

from treeweave.core.site import Site


def write_page(
    root: Path,
    urlpath: str,
    page_type: str | None = None,
    inherited_type: str | None = None,
    pubtime: float | None = None,
    **attributes: str,
) -> Path:
    """Create the directory for ``urlpath`` with its marker and sidecar files."""
    directory = root.joinpath(*[part for part in urlpath.split("/") if part])
    directory.mkdir(parents=True, exist_ok=True)
    if page_type is not None:
        (directory / "=page-type").write_text(page_type + "\n")
    if inherited_type is not None:
        (directory / ":page-type").write_text(inherited_type + "\n")
    for name, value in attributes.items():
        (directory / f"@{name}").write_text(value + "\n")
    if pubtime is not None:
        marker = directory / ":publication-date"
        marker.touch()
        os.utime(marker, (pubtime, pubtime))
    return directory


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "root"
    path.mkdir()
    return path


@pytest.fixture
def template_dir(tmp_path):
    path = tmp_path / "templates"
    path.mkdir()
    return path


@pytest.fixture
def site(root, template_dir):
    return Site(root, template_dir=template_dir)


@pytest.fixture
def make_page(root):
    """Return a helper that creates pages below the site root."""

    def _make_page(urlpath: str, **kwargs) -> Path:
        return write_page(root, urlpath, **kwargs)

    return _make_page
