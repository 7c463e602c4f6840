"""Page types for building a blog.

A ``Folder`` is the root of a blog. Its posts are the ``Post`` pages below it,
including those inside nested folders. Posts carry ``Comment`` pages as
children, and feed pages publish a folder's posts or a post's comments.
"""

from typing import Iterator

from markupsafe import escape

from treeweave.core.categories import Categorized
from treeweave.core.errors import InternalServerError
from treeweave.core.pages import Base, NewestFirst, PlainPage
from treeweave.core.paths import join_path
from treeweave.core.registry import register_page_type


@register_page_type("Blog.Post")
class Post(Categorized, NewestFirst, PlainPage):
    """An article in a blog.

    The optional ``summary`` attribute stands in for the content when the post
    appears in a listing of many posts.
    """

    FILE_ATTRIBUTES = {"summary": None}

    def comments(self) -> list["Comment"]:
        """Comments attached to this post, newest first."""
        return sorted(child for child in self.children() if isinstance(child, Comment))

    def newer(self) -> "Post | None":
        """The next post published after this one, or None."""
        from treeweave.core.chronology import next_newer

        return next_newer(self)

    def older(self) -> "Post | None":
        """The next post published before this one, or None."""
        from treeweave.core.chronology import next_older

        return next_older(self)


@register_page_type("Blog.Folder")
class Folder(NewestFirst, PlainPage):
    """A collection of posts: its own and those of its subfolders."""

    def posts(self) -> Iterator[Post]:
        """Yield the posts in this folder in traversal order.

        Posts and subfolders are visited newest first and a subfolder's
        posts are yielded in its place. Other children are ignored.
        """
        entries = [c for c in self.children() if isinstance(c, (Post, Folder))]
        for child in sorted(entries):
            if isinstance(child, Folder):
                yield from child.posts()
            else:
                yield child

    def has_posts(self) -> bool:
        return next(self.posts(), None) is not None


@register_page_type("Blog.Comment")
class Comment(NewestFirst, PlainPage):
    """A comment on a post, with the name and address of its sender."""

    FILE_ATTRIBUTES = {"sender_name": None, "sender_email": None}


@register_page_type("Blog.AbstractFeed")
class AbstractFeed(Base):
    """Base class for web feeds of a blog.

    The ``source`` attribute holds the URL path of the folder or post whose
    posts or comments make up the feed. A relative path is resolved against
    the feed's own path; the default is the feed's parent.
    """

    FILE_ATTRIBUTES = {"source": ".."}

    def source_page(self):
        return self.site.page_for(join_path(self.path, str(self.source)))

    def items(self) -> list[Base]:
        """The posts or comments of the source page."""
        source = self.source_page()
        if hasattr(source, "posts"):
            return list(source.posts())
        if hasattr(source, "comments"):
            return source.comments()
        raise InternalServerError(
            f"The source of the feed at <code>{escape(self.path)}</code> is "
            f"<code>{escape(source.path)}</code>, which has neither posts nor comments."
        )


@register_page_type("Blog.RSSFeed")
class RSSFeed(AbstractFeed):
    """Data for an RSS feed; the template produces the XML."""

    @property
    def content_type(self) -> str:
        return "application/rss+xml"


@register_page_type("Blog.AtomFeed")
class AtomFeed(AbstractFeed):
    """Data for an Atom feed; the template produces the XML."""

    @property
    def content_type(self) -> str:
        return "application/atom+xml"
