"""A message-passing world of ranks that run as threads in one process."""

from __future__ import annotations

import copy
import threading
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, Hashable, List, Optional, Sequence, Tuple

DEFAULT_TIMEOUT = 60.0

_BCAST = -1
_SCATTER = -2
_GATHER = -3
_SPLIT = -4


class _Aborted(Exception):
    """Raised in a rank when another rank has failed."""


class World:
    """A fixed number of ranks that exchange messages through buffered mailboxes."""

    timeout: float = DEFAULT_TIMEOUT

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("a world needs at least one rank")
        self.size = size
        self._cond = threading.Condition()
        self._queues: Dict[Hashable, Deque[Any]] = defaultdict(deque)
        self._next_context = 1
        self._aborted = False

    def run(self, target: Callable[..., Any], *args: Any) -> List[Any]:
        """Run ``target(comm, *args)`` on every rank and return the results by rank.

        The first error raised by any rank is raised again here.
        """
        with self._cond:
            self._queues.clear()
            self._aborted = False
        members = tuple(range(self.size))
        results: List[Any] = [None] * self.size
        errors: List[Optional[BaseException]] = [None] * self.size

        def worker(rank: int) -> None:
            comm = Communicator(self, 0, members, rank)
            try:
                results[rank] = target(comm, *args)
            except BaseException as exc:  # noqa: BLE001 - re-raised by run
                errors[rank] = exc
                self._abort()

        threads = [
            threading.Thread(target=worker, args=(rank,), daemon=True)
            for rank in members
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        real = [exc for exc in errors if exc is not None and not isinstance(exc, _Aborted)]
        if real:
            raise real[0]
        if any(exc is not None for exc in errors):
            raise RuntimeError("a rank was aborted")
        return results

    def _abort(self) -> None:
        with self._cond:
            self._aborted = True
            self._cond.notify_all()

    def _post(self, key: Hashable, obj: Any) -> None:
        with self._cond:
            self._queues[key].append(obj)
            self._cond.notify_all()

    def _take(self, key: Hashable) -> Any:
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._aborted or bool(self._queues.get(key)), self.timeout
            )
            if self._aborted:
                raise _Aborted()
            if not ready:
                raise TimeoutError(f"no message arrived for {key!r}")
            return self._queues[key].popleft()

    def _new_context(self) -> int:
        with self._cond:
            context = self._next_context
            self._next_context += 1
            return context


class Communicator:
    """A group of ranks in a world; ranks are numbered from 0 within the group."""

    def __init__(self, world: World, context: int, members: Sequence[int], rank: int) -> None:
        self._world = world
        self._context = context
        self._members = tuple(members)
        self.rank = rank

    @property
    def size(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return f"Communicator(rank={self.rank}, size={self.size})"

    def _check_peer(self, peer: int) -> None:
        if not 0 <= peer < self.size:
            raise ValueError(f"rank {peer} is outside a group of {self.size}")

    @staticmethod
    def _check_tag(tag: int) -> None:
        if tag < 0:
            raise ValueError("message tags must not be negative")

    def _send(self, obj: Any, dest: int, tag: int) -> None:
        self._check_peer(dest)
        key = (self._context, self.rank, dest, tag)
        self._world._post(key, copy.deepcopy(obj))

    def _recv(self, source: int, tag: int) -> Any:
        self._check_peer(source)
        return self._world._take((self._context, source, self.rank, tag))

    def send(self, obj: Any, dest: int, tag: int = 0) -> None:
        """Send a copy of ``obj`` to ``dest``; never blocks."""
        self._check_tag(tag)
        self._send(obj, dest, tag)

    def recv(self, source: int, tag: int = 0) -> Any:
        """Wait for the next message from ``source`` with ``tag``."""
        self._check_tag(tag)
        return self._recv(source, tag)

    def sendrecv(self, obj: Any, dest: int, source: int, tag: int = 0) -> Any:
        """Send ``obj`` to ``dest`` and return what ``source`` sent."""
        self.send(obj, dest, tag)
        return self.recv(source, tag)

    def bcast(self, obj: Any = None, root: int = 0) -> Any:
        """Return the root's ``obj`` on every rank."""
        self._check_peer(root)
        if self.rank == root:
            for dest in range(self.size):
                if dest != root:
                    self._send(obj, dest, _BCAST)
            return obj
        return self._recv(root, _BCAST)

    def scatter(self, items: Optional[Sequence[Any]] = None, root: int = 0) -> Any:
        """Hand item ``i`` of the root's ``items`` to rank ``i``."""
        self._check_peer(root)
        if self.rank == root:
            items = list(items or ())
            if len(items) != self.size:
                raise ValueError(f"scatter needs {self.size} items, got {len(items)}")
            for dest, item in enumerate(items):
                if dest != root:
                    self._send(item, dest, _SCATTER)
            return items[root]
        return self._recv(root, _SCATTER)

    def gather(self, obj: Any, root: int = 0) -> Optional[List[Any]]:
        """Collect every rank's ``obj`` at the root, in rank order; other ranks get None."""
        self._check_peer(root)
        if self.rank != root:
            self._send(obj, root, _GATHER)
            return None
        return [obj if source == root else self._recv(source, _GATHER) for source in range(self.size)]

    def split(self, color: Optional[int], key: int = 0) -> Optional["Communicator"]:
        """Split into groups of equal ``color``, ranked by ``key`` then by current rank.

        A rank whose color is None joins no group and gets None.
        """
        entries = self.gather((color, key), 0)
        assignments: Optional[List[Optional[Tuple[int, Tuple[int, ...]]]]] = None
        if self.rank == 0:
            groups: Dict[int, List[Tuple[int, int]]] = defaultdict(list)
            for rank, (entry_color, entry_key) in enumerate(entries):
                if entry_color is not None:
                    groups[entry_color].append((entry_key, rank))
            assignments = [None] * self.size
            for entry_color in sorted(groups):
                context = self._world._new_context()
                ranks = [rank for _, rank in sorted(groups[entry_color])]
                members = tuple(self._members[rank] for rank in ranks)
                for rank in ranks:
                    assignments[rank] = (context, members)
            for dest in range(1, self.size):
                self._send(assignments[dest], dest, _SPLIT)
            mine = assignments[0]
        else:
            mine = self._recv(0, _SPLIT)
        if mine is None:
            return None
        context, members = mine
        return Communicator(self._world, context, members, members.index(self._members[self.rank]))


def create_grid_comms(comm: Communicator, p: int) -> Tuple[Communicator, Communicator]:
    """Split a ``p`` x ``p`` grid of ranks into its row and column communicators."""
    if p < 1:
        raise ValueError("grid side must be positive")
    row_comm = comm.split(comm.rank // p, comm.rank % p)
    col_comm = comm.split(comm.rank % p, comm.rank // p)
    return row_comm, col_comm