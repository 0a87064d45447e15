"""
Delimiter-aware listing over a flat key space.

:func:`build_listing` groups one level of keys into Leaf and Group
nodes without any I/O. :func:`walk` descends into Groups by calling an
enumeration function with each Group's prefix, using an explicit stack
so deep hierarchies never grow the Python call stack.
"""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, Sequence

from blobjack.base.exceptions import DepthExceeded
from blobjack.base.models import Group, Leaf, ListingNode, ObjectInfo

DEFAULT_MAX_DEPTH = 1000

Enumerator = Callable[[str], Sequence[ObjectInfo]]


def build_listing(
    objects: Iterable[ObjectInfo | str],
    prefix: str = "",
    delimiter: str = "/",
) -> list[ListingNode]:
    """Group keys under *prefix* into one listing level.

    A key whose remainder after *prefix* holds no delimiter becomes a
    :class:`Leaf`. Every other key collapses into the :class:`Group` named
    by the prefix up to and including its next delimiter. A key equal to a
    Group's name minus the trailing delimiter (``a/b`` beside ``a/b/d``)
    stays a Leaf at this level.

    Args:
        objects: Object metadata or bare keys. Keys outside *prefix* are
            skipped and duplicates count once.
        prefix: Only keys starting with this string are listed.
        delimiter: Separator imposing hierarchy. Empty means flat.

    Returns:
        Nodes sorted by key (Leaves) or prefix (Groups).
    """
    leaves: dict[str, Leaf] = {}
    groups: dict[str, Group] = {}
    for obj in objects:
        info = obj if isinstance(obj, ObjectInfo) else ObjectInfo(key=obj)
        if not info.key.startswith(prefix):
            continue
        rest = info.key[len(prefix):]
        cut = rest.find(delimiter) if delimiter else -1
        if cut < 0:
            leaves.setdefault(info.key, Leaf(info.key, info.size, info.content_type))
        else:
            group_prefix = prefix + rest[: cut + len(delimiter)]
            groups.setdefault(group_prefix, Group(group_prefix))
    nodes: list[ListingNode] = [*leaves.values(), *groups.values()]
    nodes.sort(key=lambda node: node.sort_key)
    return nodes


def walk(
    enumerate_keys: Enumerator,
    prefix: str = "",
    delimiter: str = "/",
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Iterator[tuple[int, ListingNode]]:
    """Yield ``(depth, node)`` pairs for the whole hierarchy under *prefix*.

    Pre-order: every Group is followed by its children at ``depth + 1``.
    Each level is fetched with ``enumerate_keys(group.prefix)``, so a
    Group's contents reflect the store at the time it is expanded.

    Raises:
        DepthExceeded: When a Group would be expanded at ``max_depth``.
    """
    stack: list[tuple[int, ListingNode]] = []

    def push_level(level_prefix: str, depth: int) -> None:
        nodes = build_listing(enumerate_keys(level_prefix), level_prefix, delimiter)
        stack.extend((depth, node) for node in reversed(nodes))

    push_level(prefix, 0)
    while stack:
        depth, node = stack.pop()
        yield depth, node
        if isinstance(node, Group):
            if depth + 1 >= max_depth:
                raise DepthExceeded(node.prefix, max_depth)
            push_level(node.prefix, depth + 1)

