""" The :class:`Connection` multiplexes numbered channels over a single
    :class:`mqchannel.transport.base.FrameTransport`. It owns channel number
    allocation, routes every inbound frame to the channel it is addressed
    to, and tears every channel down when the transport goes away.

    The connection handshake is not handled here; the transport is expected
    to be connected and negotiated before it is handed over.
"""

import logging
import threading

import pika.frame
import pika.spec

from . import config
from .channel import Channel
from .errors import NoFreeChannels, ValidationError
from .protocol import fields
from .protocol.reason import ShutdownReason
from .transport.base import TransportClosed

logger = logging.getLogger(__name__)


class Connection:
    """ Channels are created with :func:`channel`; the returned
        :class:`mqchannel.channel.Channel` is already open. The optional
        arguments override the defaults in :mod:`mqchannel.config`.
    """

    def __init__(self, transport, channel_max=None, frame_max=None, continuation_timeout=None, close_timeout=None, dispatch_workers=None):

        if channel_max is None:
            channel_max = config.channel_max
        if frame_max is None:
            frame_max = config.frame_max

        if channel_max < 1 or channel_max > fields.MAX_CHANNEL_NUMBER:
            raise ValidationError('channel_max out of range: ' + repr(channel_max))

        if frame_max <= fields.FRAME_OVERHEAD:
            raise ValidationError('frame_max too small: ' + repr(frame_max))

        self.transport = transport
        self.channel_max = channel_max
        self.frame_max = frame_max
        self.continuation_timeout = continuation_timeout
        self.close_timeout = close_timeout
        self.dispatch_workers = dispatch_workers

        # A number maps to None while it is allocated but has no channel.

        self._channels = dict()
        self._next = 1
        self._reason = None
        self._lock = threading.Lock()

        transport.start(self)


    def __repr__(self):
        return '<%s channels=%d>' % (self.__class__.__name__, len(self._channels))


    def __enter__(self):
        return self


    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


    @property
    def is_open(self):
        return self._reason is None


    @property
    def close_reason(self):
        return self._reason


    def channels(self):
        """ Return a list of the channels currently open on this connection.
        """

        with self._lock:
            return [channel for channel in self._channels.values() if channel is not None]


    def channel(self, number=None):
        """ Allocate a channel number (or use the requested *number*),
            create a :class:`mqchannel.channel.Channel`, and open it.
        """

        with self._lock:
            self._raise_if_closed()

            if number is None:
                number = self._allocate()
            elif number < 1 or number > self.channel_max:
                raise ValidationError('channel number out of range: %d' % (number))
            elif number in self._channels:
                raise ValidationError('channel %d already in use' % (number))

            channel = Channel(self, number, self.continuation_timeout,
                              self.close_timeout, self.dispatch_workers)
            self._channels[number] = channel

        try:
            channel.open()
        except Exception as error:
            if channel.is_open:
                reason = ShutdownReason(fields.LIBRARY, fields.INTERNAL_ERROR,
                                        'channel open failed: %s' % (error), cause=error)
                channel._terminate(reason)
            raise

        logger.debug('opened channel %d', number)
        return channel


    def allocate_channel(self):
        """ Reserve and return an unused channel number.
        """

        with self._lock:
            self._raise_if_closed()
            return self._allocate()


    def _allocate(self):
        """ Called with the lock held. Numbers are handed out round-robin so
            that a number just released is the last to be reused.
        """

        for offset in range(self.channel_max):
            number = (self._next - 1 + offset) % self.channel_max + 1

            if number not in self._channels:
                self._channels[number] = None
                self._next = number % self.channel_max + 1
                return number

        raise NoFreeChannels('all %d channel numbers are in use' % (self.channel_max))


    def release_channel(self, number):
        """ Return *number* to the pool. Frames that arrive for it afterwards
            are discarded.
        """

        with self._lock:
            self._channels.pop(number, None)


    def route_frame(self, channel_number, frame_value):
        """ Hand one inbound frame to the channel it is addressed to. This is
            called by the transport's reader, one frame at a time.
        """

        if channel_number == 0:
            self._connection_frame(frame_value)
            return

        with self._lock:
            channel = self._channels.get(channel_number)

        if channel is None:
            logger.debug('discarding frame for unknown channel %d: %r', channel_number, frame_value)
            return

        channel.handle_frame(frame_value)

    deliver = route_frame


    def _connection_frame(self, frame_value):

        if isinstance(frame_value, pika.frame.Heartbeat):
            logger.debug('heartbeat received')
            return

        if isinstance(frame_value, pika.frame.Method):
            method = frame_value.method

            if isinstance(method, pika.spec.Connection.Close):
                reason = ShutdownReason.from_close(method)
                logger.warning('connection closed by broker: %s', reason)

                try:
                    self.send(0, (pika.frame.Method(0, pika.spec.Connection.CloseOk()),))
                except TransportClosed as error:
                    logger.debug('unable to send Connection.CloseOk: %s', error)

                self._shutdown(reason)
                return

        logger.debug('ignoring connection-level frame %r', frame_value)


    def send(self, channel_number, frames):
        """ Write *frames* to the transport as one contiguous unit.
        """

        if self._reason is not None:
            raise TransportClosed('connection closed: ' + str(self._reason))

        self.transport.send(channel_number, frames)


    def transport_lost(self, error):
        """ Called by the transport when it can no longer carry frames.
            Every channel closes with the same reason.
        """

        if self._reason is None:
            logger.warning('transport lost: %s', error)

        reason = ShutdownReason(fields.LIBRARY, fields.CONNECTION_FORCED,
                                'transport lost: %s' % (error), cause=error)
        self._shutdown(reason)


    def close(self, reply_code=fields.REPLY_SUCCESS, reply_text='Goodbye'):
        """ Close every open channel, then the transport.
        """

        for channel in self.channels():
            channel.abort(reply_code, reply_text)

        self._shutdown(ShutdownReason(fields.APPLICATION, reply_code, reply_text))
        self.transport.close()


    def _shutdown(self, reason):

        with self._lock:
            if self._reason is None:
                self._reason = reason

            channels = [channel for channel in self._channels.values() if channel is not None]
            self._channels.clear()

        for channel in channels:
            channel._terminate(reason)


    def _raise_if_closed(self):

        if self._reason is not None:
            raise TransportClosed('connection closed: ' + str(self._reason))


# end of class Connection


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
