"""A compact prefix-search structure over ASCII-reduced keys."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Generic, NamedTuple, TypeVar

__all__ = ["AsciiHeap"]

T = TypeVar("T")

_ALPHABET = frozenset("abcdefghijklmnopqrstuvwxyz0123456789")
_MAX_NODES = 2**32 - 1


class _Node(NamedTuple):
    letter: str
    children: range
    payloads: range


@dataclass
class _TrieNode(Generic[T]):
    children: dict[str, _TrieNode[T]] = field(default_factory=dict)
    payloads: list[T] = field(default_factory=list)


def _reduce(text: str) -> str:
    """Lower-case ASCII letters and keep only ``[a-z0-9]``."""
    return "".join(c for c in text.encode("utf-8").lower().decode("latin-1") if c in _ALPHABET)


class AsciiHeap(Generic[T]):
    """An array-backed tree for longest-prefix search over ``[a-z0-9]`` keys.

    Every node except the root carries one letter; the letters on the path from
    the root spell the node's key. The children of a node are stored as one
    contiguous block sorted by letter, and each node holds a (possibly empty)
    list of payloads whose key equals the node's key.
    """

    def __init__(self, items: Iterable[tuple[str, T]]) -> None:
        """Build the heap from ``(key, payload)`` pairs.

        Each key is lower-cased (ASCII only) and reduced to its ``[a-z0-9]``
        characters. Payloads whose reduced key is empty are dropped. Payloads
        sharing a key are kept in insertion order.
        """
        root: _TrieNode[T] = _TrieNode()
        count = 0
        for text, payload in items:
            key = _reduce(text)
            if not key:
                continue
            node = root
            for letter in key:
                child = node.children.get(letter)
                if child is None:
                    child = node.children[letter] = _TrieNode()
                    count += 1
                node = child
            node.payloads.append(payload)

        if count > _MAX_NODES:
            raise OverflowError(f"AsciiHeap supports at most {_MAX_NODES} nodes")

        nodes: list[_Node | None] = [None] * (count + 1)
        payloads: list[T] = []

        top = sorted(root.children.items())
        next_free = 1 + len(top)
        nodes[0] = _Node("", range(1, next_free), range(0, 0))

        stack = [(letter, child, pos) for pos, (letter, child) in enumerate(top, start=1)]
        stack.reverse()
        while stack:
            letter, trie_node, position = stack.pop()
            kids = sorted(trie_node.children.items())
            first_payload = len(payloads)
            payloads.extend(trie_node.payloads)
            child_start = next_free
            next_free += len(kids)
            nodes[position] = _Node(
                letter,
                range(child_start, next_free),
                range(first_payload, len(payloads)),
            )
            stack.extend(
                (kid_letter, kid, child_start + offset)
                for offset, (kid_letter, kid) in reversed(list(enumerate(kids)))
            )

        self._nodes: list[_Node] = nodes  # type: ignore[assignment]
        self._payloads = payloads

    def find(self, text: str) -> int:
        """Return the index of the node whose key is the longest prefix of ``text``.

        Only ``[a-z0-9]`` characters of ``text`` are considered; all others,
        including upper-case letters, are skipped.
        """
        index = 0
        for char in text:
            if char not in _ALPHABET:
                continue
            child = next(
                (i for i in self._nodes[index].children if self._nodes[i].letter == char),
                None,
            )
            if child is None:
                break
            index = child
        return index

    def iter(self, index: int) -> Iterator[T]:
        """Iterate over all payloads at or below the node at ``index``."""
        if not 0 <= index < len(self._nodes):
            raise IndexError(f"node index {index} out of range")
        return self._walk(index)

    def _walk(self, index: int) -> Iterator[T]:
        todo = [range(index, index + 1)]
        while todo:
            for position in todo.pop():
                node = self._nodes[position]
                if node.children:
                    todo.append(node.children)
                for payload_index in node.payloads:
                    yield self._payloads[payload_index]