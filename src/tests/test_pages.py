"""Unit tests for filesystem-backed pages."""

import os
from datetime import datetime

import pytest
from markupsafe import Markup

from treeweave.core.blog import Comment, Post
from treeweave.core.errors import NotFound
from treeweave.core.pages import Base, FrontPage, Ignore, PlainPage, chomp


# ============================================================
# Attributes
# ============================================================


class TestChomp:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Hello\n", "Hello"),
            ("Hello\r\n", "Hello"),
            ("Hello\n\n", "Hello\n"),
            ("Hello", "Hello"),
            ("", ""),
        ],
    )
    def test_removes_one_line_ending(self, text, expected):
        assert chomp(text) == expected


class TestAttributes:
    def test_reads_sidecar_file(self, site, make_page):
        make_page("/about", title="About us", content="<p>Hi</p>")
        page = site.page_for("/about")
        assert page.title == "About us"
        assert page.content == "<p>Hi</p>"

    def test_values_are_markup(self, site, make_page):
        make_page("/about", content="<b>bold</b>")
        assert isinstance(site.page_for("/about").content, Markup)

    def test_missing_file_gives_default(self, site, make_page):
        make_page("/empty")
        page = site.page_for("/empty")
        assert page.title is None
        assert page.content is None

    def test_only_one_newline_is_removed(self, site, root):
        (root / "poem").mkdir()
        (root / "poem" / "@content").write_text("line one\nline two\n\n")
        assert site.page_for("/poem").content == "line one\nline two\n"

    def test_value_is_cached_per_page_object(self, site, make_page, root):
        make_page("/about", title="Before")
        page = site.page_for("/about")
        assert page.title == "Before"
        (root / "about" / "@title").write_text("After\n")
        assert page.title == "Before"
        assert site.page_for("/about").title == "After"

    def test_undeclared_attribute(self, site, make_page):
        make_page("/about", summary="not declared for plain pages")
        page = site.page_for("/about")
        with pytest.raises(AttributeError):
            page.summary
        with pytest.raises(KeyError):
            page.attribute("summary")

    def test_attribute_tables_are_inherited(self):
        assert Post.file_attribute_table() == {
            "title": None,
            "content": None,
            "categories": "",
            "summary": None,
        }
        assert Comment.file_attribute_table()["sender_email"] is None
        assert Base.file_attribute_table() == {}

    def test_file_attributes_sorted(self, site, make_page):
        make_page("/post", page_type="Blog.Post")
        assert site.page_for("/post").file_attributes() == [
            "categories",
            "content",
            "summary",
            "title",
        ]

    def test_mtime_is_newest_attribute_file(self, site, make_page, root):
        make_page("/about", title="t", content="c")
        os.utime(root / "about" / "@title", (1_000_000, 1_000_000))
        os.utime(root / "about" / "@content", (2_000_000, 2_000_000))
        assert site.page_for("/about").mtime == datetime.fromtimestamp(2_000_000)

    def test_mtime_falls_back_to_directory(self, site, make_page, root):
        make_page("/bare")
        os.utime(root / "bare", (1_500_000, 1_500_000))
        assert site.page_for("/bare").mtime == datetime.fromtimestamp(1_500_000)


# ============================================================
# Construction
# ============================================================


class TestConstruction:
    def test_path_is_canonical(self, site, make_page):
        make_page("/a/b")
        page = site.page_for("a/./b")
        assert page.path == "/a/b/"
        assert page.urlpath == "/a/b/"
        assert str(page) == "/a/b/"

    def test_fspath(self, site, make_page, root):
        make_page("/a/b")
        assert site.page_for("/a/b/").fspath == root / "a" / "b"

    def test_root_page(self, site):
        page = site.page_for("/")
        assert isinstance(page, PlainPage)
        assert page.path == "/"

    def test_missing_directory(self, site):
        with pytest.raises(NotFound):
            site.page_for("/nowhere")

    def test_regular_file_is_not_a_page(self, site, root):
        (root / "notes.txt").write_text("hello")
        with pytest.raises(NotFound):
            site.page_for("/notes.txt")

    def test_name_too_long(self, site):
        with pytest.raises(NotFound):
            site.page_for("/" + "a" * 300)

    def test_embedded_nul(self, site):
        with pytest.raises(NotFound):
            site.page_for("/a\x00b")

    def test_symlink_loop(self, site, root):
        (root / "loop").symlink_to(root / "loop")
        with pytest.raises(NotFound):
            site.page_for("/loop")

    def test_breakout_resolves_inside_root(self, site, make_page):
        make_page("/etc")
        assert site.page_for("/../../etc").path == "/etc/"

    def test_content_type(self, site, make_page):
        make_page("/about")
        assert site.page_for("/about").content_type == "text/html"

    def test_repr(self, site, make_page):
        make_page("/about")
        assert repr(site.page_for("/about")) == (
            "<PlainPage path='/about/' file_attributes=['content', 'title']>"
        )


# ============================================================
# Navigation
# ============================================================


class TestNavigation:
    def test_parent(self, site, make_page):
        make_page("/a/b")
        assert site.page_for("/a/b").parent == site.page_for("/a")
        assert site.page_for("/a").parent == site.page_for("/")

    def test_root_has_no_parent(self, site):
        assert site.page_for("/").parent is None

    def test_children_sorted_by_name(self, site, make_page):
        for name in ("charlie", "alpha", "bravo"):
            make_page(f"/{name}")
        assert [c.path for c in site.page_for("/").children()] == [
            "/alpha/",
            "/bravo/",
            "/charlie/",
        ]

    def test_children_skip_files_and_reserved_names(self, site, make_page, root):
        make_page("/page")
        for name in (".hidden", ":layouts", "=private", "@attr"):
            (root / name).mkdir()
        (root / "file.txt").write_text("x")
        assert [c.path for c in site.page_for("/").children()] == ["/page/"]

    def test_children_skip_unreadable_entries(self, site, make_page, root):
        make_page("/a")
        (root / "loop").symlink_to(root / "loop")
        (root / "dangling").symlink_to(root / "missing")
        assert [c.path for c in site.page_for("/").children()] == ["/a/"]

    def test_children_skip_ignore_pages(self, site, make_page):
        make_page("/shown")
        make_page("/assets", page_type="Ignore")
        assert [c.path for c in site.page_for("/").children()] == ["/shown/"]

    def test_children_skip_broken_pages(self, site, make_page):
        make_page("/good")
        make_page("/broken", page_type="NoSuchType")
        assert [c.path for c in site.page_for("/").children()] == ["/good/"]

    def test_ignore_page_has_no_children(self, site, make_page):
        make_page("/assets/img", page_type="Ignore")
        make_page("/assets/img/inner")
        page = site.page_for("/assets/img")
        assert isinstance(page, Ignore)
        assert page.children() == []

    def test_children_have_their_own_types(self, site, make_page):
        make_page("/home", page_type="FrontPage")
        make_page("/plain")
        home, plain = site.page_for("/").children()
        assert isinstance(home, FrontPage)
        assert type(plain) is PlainPage


# ============================================================
# Identity and ordering
# ============================================================


class TestIdentity:
    def test_equal_by_path(self, site, make_page):
        make_page("/a")
        first, second = site.page_for("/a"), site.page_for("/a/")
        assert first is not second
        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_different_paths_differ(self, site, make_page):
        make_page("/a")
        make_page("/b")
        assert site.page_for("/a") != site.page_for("/b")

    def test_pages_of_different_sites_differ(self, site, make_page, root, template_dir):
        from treeweave.core.site import Site

        make_page("/a")
        other = Site(root, template_dir=template_dir)
        assert site.page_for("/a") != other.page_for("/a")

    def test_plain_pages_sort_by_path(self, site, make_page):
        for name in ("b", "c", "a"):
            make_page(f"/{name}")
        pages = [site.page_for(p) for p in ("/b", "/c", "/a")]
        assert [p.path for p in sorted(pages)] == ["/a/", "/b/", "/c/"]

    def test_compare_with_string(self, site, make_page):
        make_page("/b")
        page = site.page_for("/b")
        assert page < "/c/"
        assert not page < "/a/"


class TestNewestFirst:
    def test_newer_sorts_first(self, site, make_page):
        make_page("/post/old", page_type="Blog.Comment", pubtime=1_000_000)
        make_page("/post/new", page_type="Blog.Comment", pubtime=3_000_000)
        make_page("/post/mid", page_type="Blog.Comment", pubtime=2_000_000)
        ordered = sorted(site.page_for("/post").children())
        assert [c.path for c in ordered] == ["/post/new/", "/post/mid/", "/post/old/"]

    def test_publication_date_file_overrides_mtime(self, site, make_page, root):
        make_page("/p", page_type="Blog.Post", title="t", pubtime=1_000_000)
        os.utime(root / "p" / "@title", (5_000_000, 5_000_000))
        assert site.page_for("/p").pubtime == datetime.fromtimestamp(1_000_000)

    def test_pubtime_falls_back_to_mtime(self, site, make_page, root):
        make_page("/p", page_type="Blog.Post", title="t")
        os.utime(root / "p" / "@title", (4_000_000, 4_000_000))
        os.utime(root / "p", (1_000, 1_000))
        assert site.page_for("/p").pubtime == datetime.fromtimestamp(4_000_000)

    def test_equal_times_fall_back_to_path(self, site, make_page):
        make_page("/post/b", page_type="Blog.Comment", pubtime=1_000_000)
        make_page("/post/a", page_type="Blog.Comment", pubtime=1_000_000)
        ordered = sorted(site.page_for("/post").children())
        assert [c.path for c in ordered] == ["/post/a/", "/post/b/"]

    def test_derived_comparisons(self, site, make_page):
        make_page("/post/old", page_type="Blog.Comment", pubtime=1_000_000)
        make_page("/post/new", page_type="Blog.Comment", pubtime=2_000_000)
        old, new = site.page_for("/post/old"), site.page_for("/post/new")
        assert new < old
        assert old > new
        assert new <= old
