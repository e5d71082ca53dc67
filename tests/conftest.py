import queue
import threading

import pika.frame
import pika.spec
import pytest

import mqchannel
from mqchannel.protocol import content
from mqchannel.transport.base import FrameTransport, TransportClosed


def _replies():
    """ The broker's answer to each synchronous request, assuming everything
        succeeds.
    """

    spec = pika.spec
    replies = dict()

    replies[spec.Channel.Open] = lambda method: [spec.Channel.OpenOk()]
    replies[spec.Channel.Close] = lambda method: [spec.Channel.CloseOk()]
    replies[spec.Channel.Flow] = lambda method: [spec.Channel.FlowOk(active=method.active)]

    replies[spec.Exchange.Declare] = lambda method: [spec.Exchange.DeclareOk()]
    replies[spec.Exchange.Delete] = lambda method: [spec.Exchange.DeleteOk()]
    replies[spec.Exchange.Bind] = lambda method: [spec.Exchange.BindOk()]
    replies[spec.Exchange.Unbind] = lambda method: [spec.Exchange.UnbindOk()]

    replies[spec.Queue.Declare] = lambda method: [spec.Queue.DeclareOk(
        queue=method.queue or 'amq.gen-1', message_count=0, consumer_count=0)]
    replies[spec.Queue.Bind] = lambda method: [spec.Queue.BindOk()]
    replies[spec.Queue.Unbind] = lambda method: [spec.Queue.UnbindOk()]
    replies[spec.Queue.Purge] = lambda method: [spec.Queue.PurgeOk(message_count=0)]
    replies[spec.Queue.Delete] = lambda method: [spec.Queue.DeleteOk(message_count=0)]

    replies[spec.Basic.Qos] = lambda method: [spec.Basic.QosOk()]
    replies[spec.Basic.Consume] = lambda method: [spec.Basic.ConsumeOk(
        consumer_tag=method.consumer_tag or 'amq.ctag-1')]
    replies[spec.Basic.Cancel] = lambda method: [spec.Basic.CancelOk(consumer_tag=method.consumer_tag)]
    replies[spec.Basic.Get] = lambda method: [spec.Basic.GetEmpty()]
    replies[spec.Basic.Recover] = lambda method: [spec.Basic.RecoverOk()]

    replies[spec.Confirm.Select] = lambda method: [spec.Confirm.SelectOk()]
    replies[spec.Tx.Select] = lambda method: [spec.Tx.SelectOk()]
    replies[spec.Tx.Commit] = lambda method: [spec.Tx.CommitOk()]
    replies[spec.Tx.Rollback] = lambda method: [spec.Tx.RollbackOk()]

    return replies


class ScriptedTransport(FrameTransport):
    """ An in-memory stand-in for the broker. Every outbound frame is
        recorded; synchronous requests are answered from the *replies* table,
        and the answers are delivered from a separate reader thread, the same
        way a socket transport would deliver them.

        Tests replace entries in *replies* to script other outcomes; an
        entry returning an empty list leaves the request unanswered.
    """

    def __init__(self):

        self.replies = _replies()
        self.sent = list()
        self.connection = None
        self.inbox = queue.Queue()
        self.thread = None

        self._open = True
        self._condition = threading.Condition()


    @property
    def is_open(self):
        return self._open


    def start(self, connection):

        self.connection = connection
        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()


    def run(self):

        while True:
            item = self.inbox.get()

            if item is None:
                return

            if callable(item):
                item()
                continue

            channel_number, frame_value = item
            self.connection.route_frame(channel_number, frame_value)


    def send(self, channel_number, frames):

        with self._condition:
            if self._open == False:
                raise TransportClosed('scripted transport is closed')

            self.sent.extend(frames)
            self._condition.notify_all()

        for frame_value in frames:
            if isinstance(frame_value, pika.frame.Method):
                self.respond(channel_number, frame_value.method)


    def respond(self, channel_number, method):

        if getattr(method, 'nowait', False) == True:
            return

        try:
            reply = self.replies[type(method)]
        except KeyError:
            return

        self.feed(channel_number, *reply(method))


    def close(self):

        with self._condition:
            self._open = False

        self.inbox.put(None)


    def feed(self, channel_number, *items):
        """ Queue inbound traffic for *channel_number*. An item is either a
            pika method, a pika frame, or a (method, properties, body) tuple
            for content-bearing methods.
        """

        for item in items:
            if isinstance(item, tuple):
                method, properties, body = item
                frames = content.frames(channel_number, method, properties, body)
            elif isinstance(item, pika.frame.Frame):
                frames = [item]
            else:
                frames = [pika.frame.Method(channel_number, item)]

            for frame_value in frames:
                self.inbox.put((channel_number, frame_value))


    def lose(self, error=None):
        """ Report the transport as lost, from the reader thread.
        """

        if error is None:
            error = ConnectionResetError('connection reset by peer')

        self.inbox.put(lambda: self.connection.transport_lost(error))


    def drain(self, timeout=2):
        """ Wait until the reader has processed everything queued so far.
        """

        done = threading.Event()
        self.inbox.put(done.set)
        return done.wait(timeout)


    def methods(self, kind=None):
        """ Return the outbound methods, optionally only those of class
            *kind*.
        """

        with self._condition:
            frames = list(self.sent)

        found = list()
        for frame_value in frames:
            if isinstance(frame_value, pika.frame.Method):
                if kind is None or isinstance(frame_value.method, kind):
                    found.append(frame_value.method)

        return found


    def wait_for(self, kind, count=1, timeout=2):
        """ Block until at least *count* methods of class *kind* were sent.
        """

        with self._condition:
            return self._condition.wait_for(lambda: self._count(kind) >= count, timeout)


    def _count(self, kind):

        count = 0
        for frame_value in self.sent:
            if isinstance(frame_value, pika.frame.Method):
                if isinstance(frame_value.method, kind):
                    count += 1

        return count


# end of class ScriptedTransport



class Recorder:
    """ Collect notifications from a channel, for later inspection.
    """

    def __init__(self):
        self.received = list()
        self.event = threading.Event()

    def __call__(self, notification):
        self.received.append(notification)
        self.event.set()


@pytest.fixture
def transport():

    transport = ScriptedTransport()
    yield transport
    transport.close()


@pytest.fixture
def connection(transport):

    connection = mqchannel.Connection(transport, continuation_timeout=2, close_timeout=1)
    yield connection
    connection.close()


@pytest.fixture
def channel(connection):
    return connection.channel()


@pytest.fixture
def recorder():
    return Recorder()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
