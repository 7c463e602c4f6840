"""Finding the next newer or older post across a tree of blog folders.

Posts are scattered over nested folders, and sorting every post of a blog
just to find one neighbour would read the whole tree. Instead the search
starts at the post's folder and only inspects the direct children of the
folder being visited, climbing one level each time a folder has nothing
suitable. Its cost is bounded by the depth of the tree times the number of
children at each level.
"""

import logging

from treeweave.core.abstract_page import AbstractPage
from treeweave.core.blog import Folder, Post
from treeweave.core.errors import HTTPError

logger = logging.getLogger(__name__)


def _parent(page: AbstractPage) -> AbstractPage | None:
    try:
        return page.parent
    except HTTPError as exc:
        logger.debug("Parent of %s is unavailable: %s", page.path, exc)
        return None


def _is_candidate(child: AbstractPage) -> bool:
    if isinstance(child, Post):
        return True
    if isinstance(child, Folder):
        try:
            return child.has_posts()
        except HTTPError:
            return False
    return False


def _neighbour(post: Post, older: bool) -> Post | None:
    """Search outward from ``post`` for its closest neighbour in time.

    ``older`` selects the direction. A folder found on the way is entered and
    its post nearest to ``post`` in time is returned: its newest post when
    moving to older posts, its oldest when moving to newer ones.
    """
    current = _parent(post)
    left: AbstractPage | None = None
    while isinstance(current, Folder):
        try:
            siblings = current.children()
        except HTTPError:
            siblings = []
        candidates = [
            child
            for child in siblings
            if child != left
            and _is_candidate(child)
            # Sorting is newest first, so older pages sort after ``post``.
            and (post < child if older else child < post)
        ]
        if candidates:
            best = min(candidates) if older else max(candidates)
            if isinstance(best, Post):
                return best
            posts = list(best.posts())
            if posts:
                return posts[0] if older else posts[-1]
        if current.path == "/":
            return None
        left = current
        current = _parent(current)
    return None


def next_newer(post: Post) -> Post | None:
    """The post published soonest after ``post``, or None."""
    return _neighbour(post, older=False)


def next_older(post: Post) -> Post | None:
    """The post published most recently before ``post``, or None."""
    return _neighbour(post, older=True)
