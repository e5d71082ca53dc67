""" The single point through which a channel raises notifications to its
    observers. Notifications are delivered synchronously, in the order they
    are emitted; an observer that raises is isolated and reported as a
    :class:`mqchannel.protocol.events.CallbackException`.
"""

import logging
import sys
import threading
import traceback

from ..protocol import events

logger = logging.getLogger(__name__)


class Fanout:
    """ Hold the observers for each notification kind. The shutdown
        notification is special: it is stored when first emitted, emitted at
        most once, and replayed immediately to any observer that subscribes
        after the fact.
    """

    def __init__(self):

        self._handlers = dict()
        for kind in events.kinds:
            self._handlers[kind] = list()

        self._lock = threading.Lock()
        self._shutdown = None


    @property
    def shutdown(self):
        """ The stored :class:`events.Shutdown` notification, or None.
        """

        return self._shutdown


    def subscribe(self, kind, handler):
        """ Invoke *handler* with each notification of the given *kind*.
            Subscribing to :data:`events.SHUTDOWN` after the shutdown
            happened invokes *handler* right away, once.
        """

        if callable(handler):
            pass
        else:
            raise TypeError('handler must be callable')

        with self._lock:
            try:
                handlers = self._handlers[kind]
            except KeyError:
                raise ValueError('unknown notification kind: ' + repr(kind))

            replay = None
            if kind == events.SHUTDOWN and self._shutdown is not None:
                replay = self._shutdown
            else:
                handlers.append(handler)

        if replay is not None:
            self._invoke(handler, replay)


    def unsubscribe(self, kind, handler):

        with self._lock:
            try:
                self._handlers[kind].remove(handler)
            except (KeyError, ValueError):
                pass


    def emit(self, notification):
        """ Deliver *notification* to every observer of its kind. Returns
            False if it was a repeat shutdown notification and was dropped.
        """

        kind = notification.kind

        with self._lock:
            if kind == events.SHUTDOWN:
                if self._shutdown is not None:
                    return False

                self._shutdown = notification
                handlers = self._handlers[kind]
                self._handlers[kind] = list()
            else:
                handlers = list(self._handlers[kind])

        for handler in handlers:
            self._invoke(handler, notification)

        return True


    def _invoke(self, handler, notification):

        try:
            handler(notification)
        except Exception:
            e_class, e_instance, _tb = sys.exc_info()
            detail = dict()
            detail['context'] = '%s handler %r' % (notification.kind, handler)
            detail['debug'] = traceback.format_exc()

            logger.error('event handler failed: %s\n%s',
                         detail['context'], detail['debug'])

            # A failing callback-exception handler is logged, not re-raised
            # as yet another notification.

            if notification.kind != events.CALLBACK_EXCEPTION:
                self.emit(events.CallbackException(e_instance, detail))


# end of class Fanout


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
