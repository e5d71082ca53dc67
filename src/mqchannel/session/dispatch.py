""" Consumer registrations for one channel, and the machinery that delivers
    messages to them away from the connection's reader thread.
"""

import collections
import concurrent.futures
import logging
import sys
import threading
import traceback

from .. import config
from ..errors import UnroutableDelivery, ValidationError

logger = logging.getLogger(__name__)


class Registration:
    """ One consumer tag bound to a consumer. Work for a registration runs
        one item at a time, in the order it was scheduled.
    """

    def __init__(self, consumer_tag, consumer, auto_ack=False):

        self.consumer_tag = consumer_tag
        self.consumer = consumer
        self.auto_ack = auto_ack

        self.pending = collections.deque()
        self.running = False


    def __repr__(self):
        return '<%s %r auto_ack=%s>' % (self.__class__.__name__,
                                        self.consumer_tag, self.auto_ack)


# end of class Registration



class Retirement:
    """ Shared by every lane of one consumer when the channel shuts down.
        Each lane checks in once its queued work is done; the lane that
        checks in last delivers handle_shutdown.
    """

    def __init__(self, lanes, reason):

        self.reason = reason
        self._remaining = lanes
        self._lock = threading.Lock()


    def check_in(self):
        """ Returns True for the last lane to check in.
        """

        with self._lock:
            self._remaining -= 1
            return self._remaining == 0


# end of class Retirement



class Dispatch:
    """ Map consumer tags to consumers and run their callbacks on a pool of
        worker threads. Different consumer tags may run concurrently; a single
        tag never sees two callbacks at once.

        Any exception raised by a consumer is caught, logged, and handed to
        *on_error* along with a detail dictionary; it never propagates back
        into the thread that scheduled the work.

        :ivar default: The consumer that receives deliveries for unknown
            consumer tags, if any.
    """

    def __init__(self, on_error=None, workers=None):

        if workers is None:
            workers = config.dispatch_workers

        self.on_error = on_error
        self.workers = concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix='mqchannel-dispatch')

        self._registrations = dict()
        self._default = None
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._active = 0
        self._shutdown = False


    def __contains__(self, consumer_tag):
        with self._lock:
            return consumer_tag in self._registrations


    def __len__(self):
        with self._lock:
            return len(self._registrations)


    @property
    def default(self):
        with self._lock:
            if self._default is None:
                return None
            return self._default.consumer


    @default.setter
    def default(self, consumer):
        with self._lock:
            if consumer is None:
                self._default = None
            else:
                self._default = Registration(None, consumer)


    def tags(self):
        with self._lock:
            return list(self._registrations.keys())


    def get(self, consumer_tag):
        with self._lock:
            return self._registrations.get(consumer_tag)


    def register(self, consumer_tag, consumer, auto_ack=False):
        """ Bind *consumer_tag* to *consumer*. A tag can only be bound once
            per channel.
        """

        with self._lock:
            if consumer_tag in self._registrations:
                raise ValidationError('consumer tag already in use: ' + repr(consumer_tag))

            registration = Registration(consumer_tag, consumer, auto_ack)
            self._registrations[consumer_tag] = registration

        return registration


    def unregister(self, consumer_tag):
        """ Remove and return the registration for *consumer_tag*, or None if
            there was no such registration. Work already scheduled for it
            still runs.
        """

        with self._lock:
            return self._registrations.pop(consumer_tag, None)


    def dispatch(self, channel, message):
        """ Schedule delivery of *message*, received on *channel*, to the
            consumer registered for its consumer tag, or to the default
            consumer. Raises :class:`UnroutableDelivery` if neither exists.
        """

        with self._lock:
            try:
                registration = self._registrations[message.consumer_tag]
            except KeyError:
                registration = self._default

            if registration is None:
                raise UnroutableDelivery(message.consumer_tag, message.delivery_tag)

        self.schedule(registration, 'handle_delivery', channel, message)
        return registration


    def schedule(self, registration, name, *arguments):
        """ Queue a call to the consumer method *name* on the lane for
            *registration*. A *name* of None queues a check-in for the
            :class:`Retirement` passed as the sole argument.
        """

        with self._lock:
            registration.pending.append((name, arguments))

            if registration.running == True:
                return

            registration.running = True
            self._active += 1

        try:
            self.workers.submit(self._drain, registration)
        except RuntimeError:
            # The pool is gone; the channel closed underneath us.
            with self._lock:
                registration.pending.clear()
                registration.running = False
                self._active -= 1
                self._idle.notify_all()


    def _drain(self, registration):
        """ Worker thread body: run every call queued for *registration*,
            then release the lane.
        """

        while True:
            with self._lock:
                try:
                    name, arguments = registration.pending.popleft()
                except IndexError:
                    registration.running = False
                    self._active -= 1
                    self._idle.notify_all()
                    return

            if name is None:
                retirement, = arguments
                if retirement.check_in() == False:
                    continue
                name = 'handle_shutdown'
                arguments = (retirement.reason,)

            self._invoke(registration, name, arguments)


    def _invoke(self, registration, name, arguments):

        consumer = registration.consumer

        try:
            method = getattr(consumer, name)
            method(*arguments)
        except Exception:
            e_class, e_instance, _tb = sys.exc_info()
            detail = dict()
            detail['context'] = '%s.%s for consumer tag %r' % (
                type(consumer).__name__, name, registration.consumer_tag)
            detail['consumer'] = consumer
            detail['debug'] = traceback.format_exc()

            logger.error('consumer callback failed: %s\n%s',
                         detail['context'], detail['debug'])

            if self.on_error is not None:
                self.on_error(e_instance, detail)


    def wait_idle(self, timeout=None):
        """ Block until no consumer work is queued or running. Returns False
            if *timeout* expired first.
        """

        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout)


    def shutdown(self, reason):
        """ Drop every registration, telling each consumer (and the default
            consumer) about the *reason* the channel closed. A consumer bound
            to several tags hears about it once, after the work queued on all
            of its lanes has run. The worker pool finishes the queued work
            and then exits.
        """

        with self._lock:
            if self._shutdown == True:
                return
            self._shutdown = True

            registrations = list(self._registrations.values())
            self._registrations.clear()

            if self._default is not None:
                registrations.append(self._default)

        lanes = collections.OrderedDict()
        for registration in registrations:
            key = id(registration.consumer)
            lanes.setdefault(key, list()).append(registration)

        for group in lanes.values():
            retirement = Retirement(len(group), reason)
            for registration in group:
                self.schedule(registration, None, retirement)

        self.workers.shutdown(wait=False)


# end of class Dispatch


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
