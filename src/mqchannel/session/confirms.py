""" Publisher confirm bookkeeping for one channel. Every publish made in
    confirm mode is assigned the next sequence number and recorded here
    until the broker acks or nacks it.
"""

import collections
import threading
import time

from ..errors import ConfirmTimeout, NackedError


class ConfirmTracker:
    """ Outstanding sequence numbers are kept in insertion order, which is
        also numeric order since they are assigned monotonically; the lowest
        unresolved sequence number is always at the front.

        :ivar next_sequence: The sequence number the next publish will get.
    """

    def __init__(self):

        self.next_sequence = 1
        self._outstanding = collections.OrderedDict()
        self._nacked = False
        self._error = None
        self._condition = threading.Condition()


    def __len__(self):
        with self._condition:
            return len(self._outstanding)


    @property
    def lowest(self):
        """ The lowest unresolved sequence number, or None.
        """

        with self._condition:
            for sequence in self._outstanding:
                return sequence

        return None


    def register(self):
        """ Assign and record the next sequence number. The caller must hold
            the channel's write lock until the publish is on the wire.
        """

        with self._condition:
            sequence = self.next_sequence
            self.next_sequence += 1
            self._outstanding[sequence] = True

        return sequence


    def ack(self, delivery_tag, multiple=False):
        return self._resolve(delivery_tag, multiple, False)


    def nack(self, delivery_tag, multiple=False):
        return self._resolve(delivery_tag, multiple, True)


    def _resolve(self, delivery_tag, multiple, nacked):
        """ Remove the covered entries and wake any waiters. Returns the
            list of sequence numbers resolved.
        """

        resolved = list()

        with self._condition:
            if multiple == True:
                while self._outstanding:
                    sequence = next(iter(self._outstanding))
                    if sequence > delivery_tag:
                        break
                    del self._outstanding[sequence]
                    resolved.append(sequence)

            elif delivery_tag in self._outstanding:
                del self._outstanding[delivery_tag]
                resolved.append(delivery_tag)

            if nacked == True:
                self._nacked = True

            self._condition.notify_all()

        return resolved


    def fail_all(self, error=None):
        """ Resolve every outstanding entry as failed, so that waiters are
            released rather than left hanging on a dead channel. The *error*,
            if given, is raised by every later :func:`wait_or_die`.
        """

        with self._condition:
            if error is not None and self._error is None:
                self._error = error

            if self._outstanding:
                self._outstanding.clear()
                self._nacked = True

            self._condition.notify_all()


    def wait(self, timeout=None):
        """ Block until every publish made before this call is resolved, or
            until *timeout* seconds elapse. Returns a (confirmed, timed_out)
            tuple; *confirmed* is True only if no nack arrived since the
            last completed wait. The nack flag is reset when the wait
            completes, but not when it times out.
        """

        deadline = _deadline(timeout)

        with self._condition:
            snapshot = self.next_sequence - 1

            while self._pending_through(snapshot):
                remaining = _remaining(deadline)
                if remaining is not None and remaining <= 0:
                    return (False, True)
                self._condition.wait(remaining)

            confirmed = not self._nacked
            self._nacked = False

        return (confirmed, False)


    def wait_or_die(self, timeout=None):
        """ Like :func:`wait`, but raise :class:`NackedError` as soon as a
            nack is observed, without waiting for the remaining entries, and
            :class:`ConfirmTimeout` if *timeout* expires. Once the tracker was
            failed with an error, that error is raised instead.
        """

        deadline = _deadline(timeout)

        with self._condition:
            snapshot = self.next_sequence - 1

            while True:
                if self._error is not None:
                    raise self._error

                if self._nacked == True:
                    self._nacked = False
                    raise NackedError('nacks received for published messages')

                if not self._pending_through(snapshot):
                    return

                remaining = _remaining(deadline)
                if remaining is not None and remaining <= 0:
                    raise ConfirmTimeout('timed out waiting for publisher confirms')

                self._condition.wait(remaining)


    def _pending_through(self, snapshot):
        """ True if any entry at or below *snapshot* is unresolved. Called
            with the condition held.
        """

        for sequence in self._outstanding:
            return sequence <= snapshot

        return False


# end of class ConfirmTracker


def _deadline(timeout):

    if timeout is None:
        return None

    return time.monotonic() + timeout


def _remaining(deadline):

    if deadline is None:
        return None

    return deadline - time.monotonic()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
