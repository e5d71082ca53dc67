"""Request/reply correlation for one channel.

The broker answers synchronous methods on a channel strictly in the order
they were sent, so a reply is matched to its request purely by position:
the oldest pending continuation gets the next synchronous reply.
"""

from __future__ import annotations

import collections
import threading
import time
from typing import Callable, Deque, Optional, Sequence, Tuple

from ..errors import UnexpectedReplyError


class Continuation:
    """A single pending synchronous request, completed by the reader path
    and waited on by the caller that issued the request."""

    def __init__(self, expected: Sequence[type], request=None, hook: Optional[Callable] = None):
        self.expected: Tuple[type, ...] = tuple(expected)
        self.request = request
        self.hook = hook
        self.timestamp = time.time()

        self.response = None
        self.content: Optional[tuple] = None
        self.error: Optional[BaseException] = None
        self._lock = threading.Lock()
        self._event = threading.Event()

    def __repr__(self) -> str:
        names = ", ".join(kind.NAME for kind in self.expected)
        return "<%s awaiting %s>" % (self.__class__.__name__, names)

    def accepts(self, method) -> bool:
        return isinstance(method, self.expected)

    def poll(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float]) -> bool:
        """Block until completion; False if *timeout* expired first."""
        return self._event.wait(timeout)

    def result(self):
        """Return the reply method, or raise the error this continuation was
        failed with."""
        if self.error is not None:
            raise self.error
        return self.response

    def _complete(self, response, content: Optional[tuple] = None) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self.response = response
            self.content = content
            self._event.set()
        return True

    def _fail(self, error: BaseException) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self.error = error
            self._event.set()
        return True


class ContinuationQueue:
    """Strict FIFO of pending continuations for one channel.

    The caller must hold the channel's write lock across :meth:`enqueue`
    and the transmission of the matching request, so that queue order is
    wire order.
    """

    def __init__(self):
        self._queue: Deque[Continuation] = collections.deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def enqueue(self, expected: Sequence[type], request=None, hook: Optional[Callable] = None) -> Continuation:
        continuation = Continuation(expected, request, hook)
        with self._lock:
            self._queue.append(continuation)
        return continuation

    def resolve(self, method, content: Optional[tuple] = None) -> Continuation:
        """Complete the oldest continuation with *method*.

        Raises UnexpectedReplyError if nothing is pending or the oldest
        continuation expects a different reply; in the latter case that
        continuation is failed with the same error.
        """
        with self._lock:
            try:
                continuation = self._queue.popleft()
            except IndexError:
                raise UnexpectedReplyError((), method)

        if not continuation.accepts(method):
            error = UnexpectedReplyError(continuation.expected, method)
            continuation._fail(error)
            raise error

        if continuation.hook is not None:
            try:
                continuation.hook(method)
            except Exception as error:
                continuation._fail(error)
                return continuation

        continuation._complete(method, content)
        return continuation

    def fail_all(self, error: BaseException) -> int:
        """Fail every pending continuation with *error*, oldest first.
        Returns how many were still waiting."""
        with self._lock:
            pending = list(self._queue)
            self._queue.clear()

        failed = 0
        for continuation in pending:
            if continuation._fail(error):
                failed += 1

        return failed
