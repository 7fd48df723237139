"""Balanced binary search tree with an ordered node list.

Nodes are kept both in an AVL tree, for logarithmic lookups, and in a
doubly linked list in key order, for cheap iteration and for range
lookups.  A tree may be allowed to hold several nodes with the same key;
the first of such a series is the "leader" that sits in the tree, the
others only live in the list right behind it.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

Comparator = Callable[[Any, Any], int]


def strcmp(a: Any, b: Any) -> int:
    """Compare two strings (or byte strings): negative, zero or positive."""
    if isinstance(a, str):
        a = a.encode("utf-8")
    if isinstance(b, str):
        b = b.encode("utf-8")
    return (a > b) - (a < b)


class DuplicateKeyError(KeyError):
    """Raised when a key is inserted twice into a tree without duplicates."""


class AvlNode:
    """A node of an :class:`AvlTree`, carrying a key and a value."""

    __slots__ = (
        "key",
        "value",
        "parent",
        "left",
        "right",
        "balance",
        "leader",
        "_prev",
        "_next",
        "_tree",
    )

    def __init__(self, key: Any = None, value: Any = None) -> None:
        self.key = key
        self.value = value
        self.parent: Optional[AvlNode] = None
        self.left: Optional[AvlNode] = None
        self.right: Optional[AvlNode] = None
        self.balance = 0
        self.leader = True
        self._prev: AvlNode = self
        self._next: AvlNode = self
        self._tree: Optional[AvlTree] = None

    def __repr__(self) -> str:
        return f"AvlNode(key={self.key!r}, value={self.value!r})"


class AvlTree:
    """An AVL tree ordered by a three-way comparator."""

    def __init__(self, comp: Comparator = strcmp, allow_dups: bool = False) -> None:
        self.comp = comp
        self.allow_dups = allow_dups
        self.root: Optional[AvlNode] = None
        self._head = AvlNode()
        self._count = 0

    # ------------------------------------------------------------------
    # list helpers

    def _link_after(self, pos: AvlNode, node: AvlNode) -> None:
        node._prev = pos
        node._next = pos._next
        pos._next._prev = node
        pos._next = node
        self._count += 1

    def _link_before(self, pos: AvlNode, node: AvlNode) -> None:
        self._link_after(pos._prev, node)

    def _unlink(self, node: AvlNode) -> None:
        node._prev._next = node._next
        node._next._prev = node._prev
        node._prev = node._next = node
        self._count -= 1

    # ------------------------------------------------------------------
    # lookups

    def _find_rec(self, key: Any) -> tuple[AvlNode, int]:
        node = self.root
        assert node is not None
        while True:
            diff = self.comp(key, node.key)
            if diff < 0 and node.left is not None:
                node = node.left
            elif diff > 0 and node.right is not None:
                node = node.right
            else:
                return node, diff

    def find(self, key: Any) -> Optional[AvlNode]:
        """Return the (first) node with exactly this key, or None."""
        if self.root is None:
            return None
        node, diff = self._find_rec(key)
        return node if diff == 0 else None

    def find_lessequal(self, key: Any) -> Optional[AvlNode]:
        """Return the last node whose key is less than or equal to ``key``."""
        if self.root is None:
            return None
        node, diff = self._find_rec(key)
        head = self._head

        while diff < 0:
            if node._prev is head:
                return None
            node = node._prev
            diff = self.comp(key, node.key)

        nxt = node
        while diff >= 0:
            node = nxt
            if node._next is head:
                break
            nxt = node._next
            diff = self.comp(key, nxt.key)
        return node

    def find_greaterequal(self, key: Any) -> Optional[AvlNode]:
        """Return the first node whose key is greater than or equal to ``key``."""
        if self.root is None:
            return None
        node, diff = self._find_rec(key)
        head = self._head

        while diff > 0:
            if node._next is head:
                return None
            node = node._next
            diff = self.comp(key, node.key)

        prv = node
        while diff <= 0:
            node = prv
            if node._prev is head:
                break
            prv = node._prev
            diff = self.comp(key, prv.key)
        return node

    def first(self) -> Optional[AvlNode]:
        """Return the node with the smallest key, or None for an empty tree."""
        return None if self._count == 0 else self._head._next

    def last(self) -> Optional[AvlNode]:
        """Return the node with the largest key, or None for an empty tree."""
        return None if self._count == 0 else self._head._prev

    # ------------------------------------------------------------------
    # insertion

    def insert(self, key: Any, value: Any = None) -> AvlNode:
        """Insert a new node and return it.

        Raises :class:`DuplicateKeyError` if the key exists and the tree
        does not allow duplicates.
        """
        new = AvlNode(key, value)

        if self.root is None:
            self._link_after(self._head, new)
            self.root = new
            new._tree = self
            return new

        node, _ = self._find_rec(key)

        last = node
        while last._next is not self._head:
            nxt = last._next
            if nxt.leader:
                break
            last = nxt

        diff = self.comp(key, node.key)

        if diff == 0:
            if not self.allow_dups:
                raise DuplicateKeyError(key)
            new.leader = False
            self._link_after(last, new)
        elif node.balance == 1:
            self._link_before(node, new)
            node.balance = 0
            new.parent = node
            node.left = new
        elif node.balance == -1:
            self._link_after(last, new)
            node.balance = 0
            new.parent = node
            node.right = new
        elif diff < 0:
            self._link_before(node, new)
            node.balance = -1
            new.parent = node
            node.left = new
            self._post_insert(node)
        else:
            self._link_after(last, new)
            node.balance = 1
            new.parent = node
            node.right = new
            self._post_insert(node)

        new._tree = self
        return new

    def _rotate_right(self, node: AvlNode) -> None:
        left = node.left
        parent = node.parent

        left.parent = parent
        node.parent = left

        if parent is None:
            self.root = left
        elif parent.left is node:
            parent.left = left
        else:
            parent.right = left

        node.left = left.right
        left.right = node

        if node.left is not None:
            node.left.parent = node

        node.balance += 1 - min(left.balance, 0)
        left.balance += 1 + max(node.balance, 0)

    def _rotate_left(self, node: AvlNode) -> None:
        right = node.right
        parent = node.parent

        right.parent = parent
        node.parent = right

        if parent is None:
            self.root = right
        elif parent.left is node:
            parent.left = right
        else:
            parent.right = right

        node.right = right.left
        right.left = node

        if node.right is not None:
            node.right.parent = node

        node.balance -= 1 + max(right.balance, 0)
        right.balance -= 1 - min(node.balance, 0)

    def _post_insert(self, node: AvlNode) -> None:
        parent = node.parent
        if parent is None:
            return

        if node is parent.left:
            parent.balance -= 1
            if parent.balance == 0:
                return
            if parent.balance == -1:
                self._post_insert(parent)
                return
            if node.balance == -1:
                self._rotate_right(parent)
                return
            self._rotate_left(node)
            self._rotate_right(node.parent.parent)
            return

        parent.balance += 1
        if parent.balance == 0:
            return
        if parent.balance == 1:
            self._post_insert(parent)
            return
        if node.balance == 1:
            self._rotate_left(parent)
            return
        self._rotate_right(node)
        self._rotate_left(node.parent.parent)

    # ------------------------------------------------------------------
    # deletion

    def delete(self, node: AvlNode) -> None:
        """Remove ``node`` from the tree."""
        if node._tree is not self:
            raise ValueError("node does not belong to this tree")

        if node.leader:
            nxt = node._next
            if self.allow_dups and nxt is not self._head and not nxt.leader:
                nxt.leader = True
                nxt.balance = node.balance

                parent, left, right = node.parent, node.left, node.right
                nxt.parent, nxt.left, nxt.right = parent, left, right

                if parent is None:
                    self.root = nxt
                elif node is parent.left:
                    parent.left = nxt
                else:
                    parent.right = nxt

                if left is not None:
                    left.parent = nxt
                if right is not None:
                    right.parent = nxt
            else:
                self._delete_worker(node)

        self._unlink(node)
        node.parent = node.left = node.right = None
        node.balance = 0
        node._tree = None

    def _post_delete(self, node: AvlNode) -> None:
        parent = node.parent
        if parent is None:
            return

        if node is parent.left:
            parent.balance += 1
            if parent.balance == 0:
                self._post_delete(parent)
                return
            if parent.balance == 1:
                return
            if parent.right.balance == 0:
                self._rotate_left(parent)
                return
            if parent.right.balance == 1:
                self._rotate_left(parent)
                self._post_delete(parent.parent)
                return
            self._rotate_right(parent.right)
            self._rotate_left(parent)
            self._post_delete(parent.parent)
            return

        parent.balance -= 1
        if parent.balance == 0:
            self._post_delete(parent)
            return
        if parent.balance == -1:
            return
        if parent.left.balance == 0:
            self._rotate_right(parent)
            return
        if parent.left.balance == -1:
            self._rotate_right(parent)
            self._post_delete(parent.parent)
            return
        self._rotate_left(parent.left)
        self._rotate_right(parent)
        self._post_delete(parent.parent)

    def _delete_worker(self, node: AvlNode) -> None:
        parent = node.parent

        if node.left is None and node.right is None:
            if parent is None:
                self.root = None
                return

            if parent.left is node:
                parent.left = None
                parent.balance += 1
                if parent.balance == 1:
                    return
                if parent.balance == 0:
                    self._post_delete(parent)
                    return
                if parent.right.balance == 0:
                    self._rotate_left(parent)
                    return
                if parent.right.balance == 1:
                    self._rotate_left(parent)
                    self._post_delete(parent.parent)
                    return
                self._rotate_right(parent.right)
                self._rotate_left(parent)
                self._post_delete(parent.parent)
                return

            if parent.right is node:
                parent.right = None
                parent.balance -= 1
                if parent.balance == -1:
                    return
                if parent.balance == 0:
                    self._post_delete(parent)
                    return
                if parent.left.balance == 0:
                    self._rotate_right(parent)
                    return
                if parent.left.balance == -1:
                    self._rotate_right(parent)
                    self._post_delete(parent.parent)
                    return
                self._rotate_left(parent.left)
                self._rotate_right(parent)
                self._post_delete(parent.parent)
                return

        if node.left is None:
            if parent is None:
                self.root = node.right
                node.right.parent = None
                return
            node.right.parent = parent
            if parent.left is node:
                parent.left = node.right
            else:
                parent.right = node.right
            self._post_delete(node.right)
            return

        if node.right is None:
            if parent is None:
                self.root = node.left
                node.left.parent = None
                return
            node.left.parent = parent
            if parent.left is node:
                parent.left = node.left
            else:
                parent.right = node.left
            self._post_delete(node.left)
            return

        smallest = node.right
        while smallest.left is not None:
            smallest = smallest.left
        self._delete_worker(smallest)
        parent = node.parent

        smallest.balance = node.balance
        smallest.parent = parent
        smallest.left = node.left
        smallest.right = node.right

        if smallest.left is not None:
            smallest.left.parent = smallest
        if smallest.right is not None:
            smallest.right.parent = smallest

        if parent is None:
            self.root = smallest
        elif parent.left is node:
            parent.left = smallest
        else:
            parent.right = smallest

    def clear(self) -> None:
        """Remove every node at once, without rebalancing."""
        node = self._head._next
        while node is not self._head:
            nxt = node._next
            node.parent = node.left = node.right = None
            node._prev = node._next = node
            node._tree = None
            node = nxt
        self._head._prev = self._head._next = self._head
        self.root = None
        self._count = 0

    # ------------------------------------------------------------------
    # container protocol

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[AvlNode]:
        node = self._head._next
        while node is not self._head:
            nxt = node._next
            yield node
            node = nxt

    def __reversed__(self) -> Iterator[AvlNode]:
        node = self._head._prev
        while node is not self._head:
            prv = node._prev
            yield node
            node = prv