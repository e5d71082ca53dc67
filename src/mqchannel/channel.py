""" The :class:`Channel` is the primary interface for talking to the broker:
    declaring and binding exchanges and queues, publishing, consuming, and
    acknowledging. Every synchronous AMQP method looks like a blocking call
    to the caller, while replies are actually matched up on the connection's
    reader thread.

    Channels are created via :func:`mqchannel.connection.Connection.channel`
    rather than instantiated directly.
"""

import logging
import threading

import pika.frame
import pika.spec

from . import config
from . import consumer as consumers
from .errors import (
    ChannelClosedError,
    ConfirmTimeout,
    ContinuationTimeout,
    FrameError,
    NackedError,
    NotInConfirmMode,
    UnexpectedReplyError,
    UnroutableDelivery,
    ValidationError,
)
from .protocol import content
from .protocol import events
from .protocol import fields
from .protocol.message import EMPTY, Found, Message, QueueDeclareOk
from .protocol.reason import ShutdownReason
from .session.confirms import ConfirmTracker
from .session.continuation import Continuation, ContinuationQueue
from .session.dispatch import Dispatch
from .session.fanout import Fanout

logger = logging.getLogger(__name__)


# The readable fields of a property bag, as carried in a content header.

property_names = (
    'content_type', 'content_encoding', 'headers', 'delivery_mode',
    'priority', 'correlation_id', 'reply_to', 'expiration', 'message_id',
    'timestamp', 'type', 'user_id', 'app_id', 'cluster_id')


class Channel:
    """ One numbered channel on a :class:`mqchannel.connection.Connection`.

        A channel moves through three states, in order, and never back:
        :data:`OPEN`, :data:`CLOSING`, and :data:`CLOSED`. Once it leaves
        :data:`OPEN` every operation raises
        :class:`mqchannel.errors.ChannelClosedError` carrying the stored
        :attr:`close_reason`; the one exception is :func:`close`, which is
        idempotent for a channel that was closed locally.

        Observers subscribe to notifications via :func:`subscribe`; see
        :mod:`mqchannel.protocol.events` for the available kinds.

        :ivar number: The channel number, unique within the connection.
        :ivar continuation_timeout: Seconds to wait for the reply to a
            synchronous request before giving up and closing the channel.
        :ivar close_timeout: Seconds to wait for the broker to acknowledge
            a close.
        :ivar flow_active: False while the broker has asked the client to
            stop publishing.
    """

    OPEN = 'open'
    CLOSING = 'closing'
    CLOSED = 'closed'

    def __init__(self, connection, number, continuation_timeout=None, close_timeout=None, workers=None):

        if continuation_timeout is None:
            continuation_timeout = config.continuation_timeout
        if close_timeout is None:
            close_timeout = config.close_timeout

        self.connection = connection
        self.number = number
        self.continuation_timeout = continuation_timeout
        self.close_timeout = close_timeout
        self.flow_active = True
        self.transactional = False
        self.state = self.OPEN

        self.events = Fanout()
        self.dispatch = Dispatch(self._callback_exception, workers)

        self._continuations = ContinuationQueue()
        self._confirms = None
        self._assembler = content.Assembler()
        self._reason = None
        self._closing = None
        self._closed = threading.Event()

        # Held across "enqueue the continuation (or assign the publish
        # sequence number), then write the frame", so that continuation
        # order and confirm order both match wire order.

        self._write_lock = threading.RLock()


    def __int__(self):
        return self.number


    def __repr__(self):
        return '<%s number=%d %s>' % (self.__class__.__name__, self.number, self.state)


    def __enter__(self):
        return self


    def __exit__(self, exc_type, exc_value, traceback):

        if exc_type is not None:
            self.abort()
        elif self.is_open:
            self.close()


    @property
    def close_reason(self):
        """ None while the channel is open, otherwise the
            :class:`mqchannel.protocol.reason.ShutdownReason` that closed it.
        """

        return self._reason


    @property
    def is_open(self):
        return self.state == self.OPEN


    @property
    def is_closed(self):
        return self.state != self.OPEN


    @property
    def confirm_mode(self):
        return self._confirms is not None


    @property
    def next_publish_seq_no(self):
        """ The sequence number the next publish will be assigned in confirm
            mode; zero if confirm mode is not enabled.
        """

        confirms = self._confirms
        if confirms is None:
            return 0

        return confirms.next_sequence


    @property
    def default_consumer(self):
        """ The consumer that receives deliveries whose consumer tag is not
            registered on this channel. Without one, such a delivery is a
            fatal error for the channel.
        """

        return self.dispatch.default


    @default_consumer.setter
    def default_consumer(self, consumer):

        if consumer is not None:
            consumer = consumers.adapt(consumer)

        self.dispatch.default = consumer


    @property
    def consumer_tags(self):
        return self.dispatch.tags()


    def subscribe(self, kind, handler):
        """ Invoke *handler* with every notification of the given *kind*,
            one of the constants in :mod:`mqchannel.protocol.events`.
            Subscribing to :data:`events.SHUTDOWN` on a channel that already
            closed invokes *handler* immediately.

            Handlers are called on the thread that observed the event, which
            for broker traffic is the connection's reader thread. A handler
            must not make a synchronous call on this channel (such as
            :func:`queue_declare`), because the reply it waits for can only
            be read once the handler returns; hand such work to another
            thread instead.
        """

        self.events.subscribe(kind, handler)


    def unsubscribe(self, kind, handler):
        self.events.unsubscribe(kind, handler)


    def wait_closed(self, timeout=None):
        """ Block until the channel reaches the closed state. Returns False
            if *timeout* expired first.
        """

        return self._closed.wait(timeout)


    ### Lifecycle.

    def open(self):
        """ Send Channel.Open and wait for the broker to accept it. This is
            invoked by the connection when the channel is created.
        """

        self._rpc(pika.spec.Channel.Open(), pika.spec.Channel.OpenOk)


    def close(self, reply_code=fields.REPLY_SUCCESS, reply_text='Goodbye'):
        """ Close the channel and wait for the broker to acknowledge it.
            Every pending request fails with
            :class:`mqchannel.errors.ChannelClosedError`. Calling this again
            on a locally closed channel is a no-op; calling it on a channel
            the broker closed raises.
        """

        reason = ShutdownReason(fields.APPLICATION, reply_code, reply_text)
        self._close(reason, abort=False)


    def abort(self, reply_code=fields.REPLY_SUCCESS, reply_text='Goodbye'):
        """ Like :func:`close`, but never raises because the channel is
            already closed.
        """

        reason = ShutdownReason(fields.APPLICATION, reply_code, reply_text)
        self._close(reason, abort=True)


    def _close(self, reason, abort):

        with self._write_lock:
            if self.state != self.OPEN and abort == False:
                if self._reason.initiator == fields.PEER:
                    raise ChannelClosedError(self._reason)

            if self.state == self.CLOSED:
                return

        closing = self._close_locally(reason)

        if closing is None:
            return

        if closing.wait(self.close_timeout) == False:
            logger.warning('no Channel.CloseOk on channel %d within %.2f sec',
                           self.number, self.close_timeout)
            self._finish()


    def _close_locally(self, reason, error=None):
        """ Move the channel to the closing state, fail everything that is
            pending, and send Channel.Close. Returns the continuation for the
            broker's Channel.CloseOk, or None if there is nothing to wait
            for. Never blocks on the broker, so the reader thread may call
            this.
        """

        send_failed = False

        with self._write_lock:
            if self.state != self.OPEN:
                return self._closing

            self._set_reason(reason)
            self.state = self.CLOSING

            if error is None:
                error = ChannelClosedError(self._reason)

            self._drain(error)

            reason = self._reason
            request = pika.spec.Channel.Close(
                reply_code=reason.reply_code,
                reply_text=reason.reply_text,
                class_id=reason.class_id,
                method_id=reason.method_id)

            self._closing = Continuation((pika.spec.Channel.CloseOk,), request)

            logger.debug('closing channel %d: %s', self.number, reason)

            try:
                self._send(request)
            except Exception as failure:
                logger.warning('unable to send Channel.Close on channel %d: %s',
                               self.number, failure)
                send_failed = True

        if send_failed:
            self._finish()
            return None

        return self._closing


    def _terminate(self, reason):
        """ Close without a handshake, for example because the transport
            is gone.
        """

        with self._write_lock:
            self._set_reason(reason)
            if self.state == self.OPEN:
                self.state = self.CLOSING

        self._finish()


    def _finish(self):
        """ Transition to the closed state and tell everyone about it.
            Returns False if the channel was already closed.
        """

        with self._write_lock:
            if self.state == self.CLOSED:
                return False

            self.state = self.CLOSED
            reason = self._reason
            closing = self._closing
            self._drain(ChannelClosedError(reason))

        logger.debug('channel %d closed: %s', self.number, reason)

        self.connection.release_channel(self.number)
        self.dispatch.shutdown(reason)
        self._closed.set()
        self.events.emit(events.Shutdown(reason))

        if closing is not None:
            closing._complete(None)

        return True


    def _set_reason(self, reason):
        """ Store the close reason, unless one is already stored. Called with
            the write lock held.
        """

        if self._reason is None:
            self._reason = reason
            return True

        return False


    def _drain(self, error):

        self._continuations.fail_all(error)

        confirms = self._confirms
        if confirms is not None:
            confirms.fail_all(ChannelClosedError(self._reason))


    def _raise_if_closed(self):

        if self.state != self.OPEN:
            raise ChannelClosedError(self._reason)


    ### Outbound plumbing.

    def _send(self, method, properties=None, body=None):

        frames = content.frames(self.number, method, properties, body,
                                self.connection.frame_max)
        self.connection.send(self.number, frames)


    def _cast(self, method):
        """ Send an asynchronous method, or a synchronous one with its
            nowait flag set; nothing comes back.
        """

        with self._write_lock:
            self._raise_if_closed()
            self._send(method)


    def _call(self, method, expected, hook=None):
        """ Send a synchronous method and block until its reply arrives.
            Returns the completed continuation.
        """

        with self._write_lock:
            self._raise_if_closed()
            continuation = self._continuations.enqueue(expected, method, hook)
            self._send(method)

        self._wait(continuation)
        return continuation


    def _rpc(self, method, *expected, hook=None):
        """ Like :func:`_call`, but return the reply method itself.
        """

        return self._call(method, expected, hook).result()


    def _request(self, method, nowait, *expected):

        if nowait == True:
            self._cast(method)
            return None

        return self._rpc(method, *expected)


    def _wait(self, continuation):
        """ Wait for *continuation* to complete. A timeout is fatal to the
            channel: the reply may still arrive later, and if it were
            allowed to it would be matched against the wrong request.
        """

        timeout = self.continuation_timeout

        if continuation.wait(timeout) == True:
            return

        error = ContinuationTimeout('no reply to %s within %.2f sec on channel %d' % (
            continuation.request.NAME, timeout, self.number))

        logger.error('%s; closing the channel', error)

        reason = ShutdownReason(fields.LIBRARY, fields.REPLY_SUCCESS, str(error), cause=error)
        continuation._fail(error)
        self._close_locally(reason, error)
        raise error


    ### Inbound frames, always on the connection's reader thread.

    def handle_frame(self, frame_value):
        """ Process one inbound frame addressed to this channel. Frames are
            handled strictly in the order they arrive; nothing in here
            blocks on the broker, and no consumer code runs here.
        """

        if isinstance(frame_value, pika.frame.Method):
            method = frame_value.method

            if isinstance(method, pika.spec.Channel.Close):
                self._on_close(method)
                return

            if isinstance(method, pika.spec.Channel.CloseOk):
                self._on_close_ok(method)
                return

        if self.state != self.OPEN:
            # Once Channel.Close is on its way, the protocol requires us to
            # discard everything except Close and CloseOk.
            logger.debug('channel %d is %s, discarding %r', self.number, self.state, frame_value)
            return

        try:
            self._process(frame_value)
        except (FrameError, UnexpectedReplyError) as error:
            logger.error('protocol violation on channel %d: %s', self.number, error)
            self._violation(fields.UNEXPECTED_FRAME, error)
        except UnroutableDelivery as error:
            logger.error('channel %d: %s', self.number, error)
            self._violation(fields.INTERNAL_ERROR, error)


    def _violation(self, reply_code, error):

        reason = ShutdownReason(fields.LIBRARY, reply_code, str(error), cause=error)
        self._close_locally(reason)


    def _process(self, frame_value):

        if isinstance(frame_value, pika.frame.Method):
            method = frame_value.method

            if pika.spec.has_content(method.INDEX):
                self._assembler.process(frame_value)
                return

            if self._assembler.in_progress:
                raise FrameError(method.NAME + ' arrived in the middle of content')

            self._on_method(method)
            return

        assembled = self._assembler.process(frame_value)

        if assembled is not None:
            self._on_content(*assembled)


    def _on_method(self, method):

        if isinstance(method, pika.spec.Basic.Ack):
            if self._confirms is not None:
                self._confirms.ack(method.delivery_tag, method.multiple)
            self.events.emit(events.BasicAck(method.delivery_tag, method.multiple))

        elif isinstance(method, pika.spec.Basic.Nack):
            if self._confirms is not None:
                self._confirms.nack(method.delivery_tag, method.multiple)
            self.events.emit(events.BasicNack(method.delivery_tag, method.multiple, method.requeue))

        elif isinstance(method, pika.spec.Basic.Cancel):
            self._on_cancel(method)

        elif isinstance(method, pika.spec.Channel.Flow):
            self._on_flow(method)

        else:
            self._continuations.resolve(method)

            if isinstance(method, pika.spec.Basic.RecoverOk):
                self.events.emit(events.BasicRecoverOk())


    def _on_content(self, method, properties, body):

        if isinstance(method, pika.spec.Basic.Deliver):
            message = Message.from_deliver(method, properties, body)
            self.dispatch.dispatch(self, message)

        elif isinstance(method, pika.spec.Basic.GetOk):
            self._continuations.resolve(method, (properties, body))

        elif isinstance(method, pika.spec.Basic.Return):
            self.events.emit(events.BasicReturn(
                method.reply_code, method.reply_text, method.exchange,
                method.routing_key, properties, body))

        else:
            raise FrameError('unexpected content for ' + method.NAME)


    def _on_cancel(self, method):
        """ The broker cancelled a consumer on its own, for example because
            its queue was deleted.
        """

        consumer_tag = method.consumer_tag
        logger.info('broker cancelled consumer %r on channel %d', consumer_tag, self.number)

        registration = self.dispatch.unregister(consumer_tag)
        if registration is not None:
            self.dispatch.schedule(registration, 'handle_cancel', consumer_tag)

        self.events.emit(events.ConsumerCancelled(consumer_tag))


    def _on_flow(self, method):

        active = bool(method.active)
        self.flow_active = active

        logger.info('channel %d flow %s by broker', self.number, 'resumed' if active else 'paused')

        with self._write_lock:
            if self.state == self.OPEN:
                self._send(pika.spec.Channel.FlowOk(active=active))

        self.events.emit(events.FlowControl(active))


    def _on_close(self, method):
        """ The broker closed the channel, typically because of an error in
            one of our requests: a passive declare of something that does
            not exist, a permission problem, and so on.
        """

        reason = ShutdownReason.from_close(method)
        logger.warning('channel %d closed by broker: %s', self.number, reason)

        with self._write_lock:
            self._set_reason(reason)

            if self.state == self.CLOSED:
                return

            locally_closing = self._closing is not None
            self.state = self.CLOSING
            self._drain(ChannelClosedError(self._reason))

            try:
                self._send(pika.spec.Channel.CloseOk())
            except Exception as failure:
                logger.warning('unable to send Channel.CloseOk on channel %d: %s',
                               self.number, failure)
                locally_closing = False

        # If our own Channel.Close crossed the broker's on the wire, its
        # CloseOk is still coming; hold on to the channel number until then.

        if locally_closing == False:
            self._finish()


    def _on_close_ok(self, method):

        if self._closing is None:
            if self.state == self.OPEN:
                error = UnexpectedReplyError((), method)
                logger.error('protocol violation on channel %d: %s', self.number, error)
                self._violation(fields.UNEXPECTED_FRAME, error)
            return

        self._finish()


    def _callback_exception(self, exception, detail):
        self.events.emit(events.CallbackException(exception, detail))


    ### Exchanges.

    def exchange_declare(self, exchange, exchange_type='direct', durable=False, auto_delete=False, internal=False, arguments=None, passive=False, nowait=False):
        """ Declare an *exchange* of the given *exchange_type*. With
            *passive* set, only check that the exchange exists; if it does
            not, the broker closes the channel and this raises
            :class:`mqchannel.errors.ChannelClosedError`.
        """

        _check_short('exchange name', exchange)
        _check_short('exchange type', exchange_type)

        method = pika.spec.Exchange.Declare(
            exchange=exchange, type=exchange_type, passive=passive,
            durable=durable, auto_delete=auto_delete, internal=internal,
            nowait=nowait, arguments=arguments)

        self._request(method, nowait, pika.spec.Exchange.DeclareOk)


    def exchange_declare_passive(self, exchange):
        self.exchange_declare(exchange, passive=True)


    def exchange_delete(self, exchange, if_unused=False, nowait=False):

        _check_short('exchange name', exchange)

        method = pika.spec.Exchange.Delete(exchange=exchange, if_unused=if_unused, nowait=nowait)
        self._request(method, nowait, pika.spec.Exchange.DeleteOk)


    def exchange_bind(self, destination, source, routing_key='', arguments=None, nowait=False):
        """ Bind the *destination* exchange to the *source* exchange.
        """

        _check_short('exchange name', destination)
        _check_short('exchange name', source)
        _check_short('routing key', routing_key)

        method = pika.spec.Exchange.Bind(
            destination=destination, source=source, routing_key=routing_key,
            nowait=nowait, arguments=arguments)

        self._request(method, nowait, pika.spec.Exchange.BindOk)


    def exchange_unbind(self, destination, source, routing_key='', arguments=None, nowait=False):

        _check_short('exchange name', destination)
        _check_short('exchange name', source)
        _check_short('routing key', routing_key)

        method = pika.spec.Exchange.Unbind(
            destination=destination, source=source, routing_key=routing_key,
            nowait=nowait, arguments=arguments)

        self._request(method, nowait, pika.spec.Exchange.UnbindOk)


    ### Queues.

    def queue_declare(self, queue='', durable=False, exclusive=False, auto_delete=False, arguments=None, passive=False, nowait=False):
        """ Declare a *queue*; pass an empty name to have the broker generate
            one. Returns a :class:`mqchannel.protocol.message.QueueDeclareOk`
            with the queue name and its current message and consumer counts,
            or None for a no-wait declaration.
        """

        _check_short('queue name', queue)

        method = pika.spec.Queue.Declare(
            queue=queue, passive=passive, durable=durable,
            exclusive=exclusive, auto_delete=auto_delete, nowait=nowait,
            arguments=arguments)

        reply = self._request(method, nowait, pika.spec.Queue.DeclareOk)

        if reply is None:
            return None

        return QueueDeclareOk.from_method(reply)


    def queue_declare_passive(self, queue):
        """ Check that *queue* exists. A missing queue closes the channel
            (reply code 404) and raises
            :class:`mqchannel.errors.ChannelClosedError`.
        """

        return self.queue_declare(queue, passive=True)


    def message_count(self, queue):
        """ The number of messages ready for delivery in *queue*.
        """

        return self.queue_declare_passive(queue).message_count


    def consumer_count(self, queue):
        return self.queue_declare_passive(queue).consumer_count


    def queue_bind(self, queue, exchange, routing_key='', arguments=None, nowait=False):

        _check_short('queue name', queue)
        _check_short('exchange name', exchange)
        _check_short('routing key', routing_key)

        method = pika.spec.Queue.Bind(
            queue=queue, exchange=exchange, routing_key=routing_key,
            nowait=nowait, arguments=arguments)

        self._request(method, nowait, pika.spec.Queue.BindOk)


    def queue_unbind(self, queue, exchange, routing_key='', arguments=None):

        _check_short('queue name', queue)
        _check_short('exchange name', exchange)
        _check_short('routing key', routing_key)

        method = pika.spec.Queue.Unbind(
            queue=queue, exchange=exchange, routing_key=routing_key,
            arguments=arguments)

        self._rpc(method, pika.spec.Queue.UnbindOk)


    def queue_purge(self, queue):
        """ Remove every ready message from *queue*; returns how many were
            removed.
        """

        _check_short('queue name', queue)

        reply = self._rpc(pika.spec.Queue.Purge(queue=queue), pika.spec.Queue.PurgeOk)
        return reply.message_count


    def queue_delete(self, queue, if_unused=False, if_empty=False, nowait=False):
        """ Delete *queue*; returns the number of messages deleted with it,
            or None for a no-wait deletion.
        """

        _check_short('queue name', queue)

        method = pika.spec.Queue.Delete(
            queue=queue, if_unused=if_unused, if_empty=if_empty, nowait=nowait)

        reply = self._request(method, nowait, pika.spec.Queue.DeleteOk)

        if reply is None:
            return None

        return reply.message_count


    ### Basic content class.

    def basic_qos(self, prefetch_size=0, prefetch_count=0, global_qos=False):

        _check_unsigned('prefetch size', prefetch_size, fields.MAX_PREFETCH_SIZE)
        _check_unsigned('prefetch count', prefetch_count, fields.MAX_PREFETCH_COUNT)

        method = pika.spec.Basic.Qos(
            prefetch_size=prefetch_size, prefetch_count=prefetch_count,
            global_qos=global_qos)

        self._rpc(method, pika.spec.Basic.QosOk)


    def basic_consume(self, queue, consumer, auto_ack=False, consumer_tag='', no_local=False, exclusive=False, arguments=None, nowait=False):
        """ Start consuming from *queue*. The *consumer* is either a
            :class:`mqchannel.consumer.Consumer` or a plain callable taking
            (channel, message). Returns the consumer tag, which the broker
            generates if *consumer_tag* is empty; a no-wait consume requires
            the caller to supply one.
        """

        _check_short('queue name', queue)
        _check_short('consumer tag', consumer_tag)

        consumer = consumers.adapt(consumer)

        if nowait == True and consumer_tag == '':
            raise ValidationError('a no-wait consume requires a client-supplied consumer tag')

        if consumer_tag != '' and consumer_tag in self.dispatch:
            raise ValidationError('consumer tag already in use: ' + repr(consumer_tag))

        method = pika.spec.Basic.Consume(
            queue=queue, consumer_tag=consumer_tag, no_local=no_local,
            no_ack=auto_ack, exclusive=exclusive, nowait=nowait,
            arguments=arguments)

        if nowait == True:
            with self._write_lock:
                self._raise_if_closed()
                registration = self.dispatch.register(consumer_tag, consumer, auto_ack)
                try:
                    self._send(method)
                except Exception:
                    self.dispatch.unregister(consumer_tag)
                    raise

            self.dispatch.schedule(registration, 'handle_consume_ok', consumer_tag)
            return consumer_tag

        # The registration happens on the reader thread as the ConsumeOk is
        # processed, before any delivery for the new tag can be.

        def registered(reply):
            registration = self.dispatch.register(reply.consumer_tag, consumer, auto_ack)
            self.dispatch.schedule(registration, 'handle_consume_ok', reply.consumer_tag)

        reply = self._rpc(method, pika.spec.Basic.ConsumeOk, hook=registered)
        return reply.consumer_tag


    def basic_cancel(self, consumer_tag, nowait=False):
        """ Stop the consumer registered as *consumer_tag*. Deliveries
            already received for it are still handed to the consumer.
        """

        _check_short('consumer tag', consumer_tag)

        method = pika.spec.Basic.Cancel(consumer_tag=consumer_tag, nowait=nowait)

        def cancelled(reply):
            registration = self.dispatch.unregister(consumer_tag)
            if registration is not None:
                self.dispatch.schedule(registration, 'handle_cancel_ok', consumer_tag)

        if nowait == True:
            self._cast(method)
            cancelled(None)
            return

        self._rpc(method, pika.spec.Basic.CancelOk, hook=cancelled)


    def basic_get(self, queue, auto_ack=False):
        """ Retrieve a single message from *queue*. Returns
            :class:`mqchannel.protocol.message.Found` wrapping the message,
            or :data:`mqchannel.protocol.message.EMPTY` if the queue had
            nothing ready. Unless *auto_ack* is set the retrieved message
            must be acknowledged.
        """

        _check_short('queue name', queue)

        method = pika.spec.Basic.Get(queue=queue, no_ack=auto_ack)
        continuation = self._call(method, (pika.spec.Basic.GetOk, pika.spec.Basic.GetEmpty))
        reply = continuation.result()

        if isinstance(reply, pika.spec.Basic.GetEmpty):
            return EMPTY

        properties, body = continuation.content
        return Found(Message.from_get(reply, properties, body))


    def basic_publish(self, exchange, routing_key, body=b'', properties=None, mandatory=False):
        """ Publish a message. The *properties* may be a
            :class:`pika.spec.BasicProperties`, a dictionary, or any object
            exposing the same readable fields. In confirm mode, returns the
            sequence number assigned to this publish; otherwise None.
            Never waits for the broker.
        """

        _check_short('exchange name', exchange)
        _check_short('routing key', routing_key)

        body = _body(body)
        properties = _properties(properties)

        method = pika.spec.Basic.Publish(
            exchange=exchange, routing_key=routing_key, mandatory=mandatory)

        with self._write_lock:
            self._raise_if_closed()

            sequence = None
            if self._confirms is not None:
                sequence = self._confirms.register()

            self._send(method, properties, body)

        return sequence


    def basic_ack(self, delivery_tag=0, multiple=False):
        """ Acknowledge the delivery identified by *delivery_tag*, or, with
            *multiple* set, every unacknowledged delivery up to and including
            it.
        """

        _check_unsigned('delivery tag', delivery_tag)
        self._cast(pika.spec.Basic.Ack(delivery_tag=delivery_tag, multiple=multiple))


    def basic_nack(self, delivery_tag=0, multiple=False, requeue=True):

        _check_unsigned('delivery tag', delivery_tag)
        self._cast(pika.spec.Basic.Nack(delivery_tag=delivery_tag, multiple=multiple, requeue=requeue))


    def basic_reject(self, delivery_tag, requeue=True):

        _check_unsigned('delivery tag', delivery_tag)
        self._cast(pika.spec.Basic.Reject(delivery_tag=delivery_tag, requeue=requeue))


    def basic_recover(self, requeue=False):
        """ Ask the broker to redeliver every unacknowledged message on this
            channel.
        """

        self._rpc(pika.spec.Basic.Recover(requeue=requeue), pika.spec.Basic.RecoverOk)


    def basic_recover_async(self, requeue=False):
        """ Deprecated by the protocol; kept for brokers that still expect
            it. Nothing comes back.
        """

        self._cast(pika.spec.Basic.RecoverAsync(requeue=requeue))


    ### Channel flow.

    def flow(self, active):
        """ Ask the broker to pause (*active* False) or resume deliveries on
            this channel. Returns the state the broker settled on.
        """

        reply = self._rpc(pika.spec.Channel.Flow(active=active), pika.spec.Channel.FlowOk)
        return reply.active


    ### Publisher confirms.

    def confirm_select(self, nowait=False):
        """ Enable publisher confirms. Every subsequent publish is assigned a
            sequence number, starting at 1. This cannot be undone.
        """

        method = pika.spec.Confirm.Select(nowait=nowait)
        continuation = None

        with self._write_lock:
            self._raise_if_closed()

            if nowait == False:
                continuation = self._continuations.enqueue((pika.spec.Confirm.SelectOk,), method)

            self._send(method)

            if self._confirms is None:
                self._confirms = ConfirmTracker()

        if continuation is not None:
            self._wait(continuation)
            continuation.result()


    def wait_for_confirms(self, timeout=None, return_timed_out=False):
        """ Wait until every message published so far has been acked or
            nacked. Returns True if all of them were acked since the last
            call. If *timeout* expires first the result is False; set
            *return_timed_out* to get a (confirmed, timed_out) tuple instead.
        """

        confirmed, timed_out = self._confirm_tracker().wait(timeout)

        if return_timed_out == True:
            return (confirmed, timed_out)

        return confirmed


    def wait_for_confirms_or_die(self, timeout=None):
        """ Wait until every message published so far has been acked. If a
            nack is seen, or *timeout* expires, the channel is closed and
            :class:`mqchannel.errors.NackedError` or
            :class:`mqchannel.errors.ConfirmTimeout` is raised. If the channel
            closes while waiting, :class:`mqchannel.errors.ChannelClosedError`
            carrying the close reason is raised.
        """

        tracker = self._confirm_tracker()

        try:
            tracker.wait_or_die(timeout)
        except (NackedError, ConfirmTimeout) as error:
            reason = ShutdownReason(fields.LIBRARY, fields.REPLY_SUCCESS, str(error), cause=error)
            self._close(reason, abort=True)
            raise


    def _confirm_tracker(self):

        self._raise_if_closed()

        confirms = self._confirms
        if confirms is None:
            raise NotInConfirmMode('confirms not selected on channel %d' % (self.number))

        return confirms


    ### Transactions.

    def tx_select(self):

        self._rpc(pika.spec.Tx.Select(), pika.spec.Tx.SelectOk)
        self.transactional = True


    def tx_commit(self):
        self._rpc(pika.spec.Tx.Commit(), pika.spec.Tx.CommitOk)


    def tx_rollback(self):
        self._rpc(pika.spec.Tx.Rollback(), pika.spec.Tx.RollbackOk)


# end of class Channel



def _check_short(description, value):
    """ Names, routing keys, and consumer tags travel as short strings,
        limited to 255 bytes once encoded.
    """

    if isinstance(value, bytes):
        length = len(value)
    elif isinstance(value, str):
        length = len(value.encode('utf-8'))
    else:
        raise ValidationError('%s must be a string, not %s' % (description, type(value).__name__))

    if length > fields.MAX_SHORT_STRING:
        raise ValidationError('%s is %d bytes, the limit is %d' % (description, length, fields.MAX_SHORT_STRING))


def _check_unsigned(description, value, maximum=None):

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError('%s must be an integer, not %r' % (description, value))

    if value < 0:
        raise ValidationError('%s must not be negative: %d' % (description, value))

    if maximum is not None and value > maximum:
        raise ValidationError('%s exceeds %d: %d' % (description, maximum, value))


def _body(body):

    if body is None:
        return b''

    if isinstance(body, str):
        return body.encode('utf-8')

    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)

    raise ValidationError('message body must be bytes or str, not ' + type(body).__name__)


def _properties(properties):
    """ Normalize a property bag to :class:`pika.spec.BasicProperties`.
    """

    if properties is None:
        return pika.spec.BasicProperties()

    if isinstance(properties, pika.spec.BasicProperties):
        return properties

    values = dict()

    if isinstance(properties, dict):
        unknown = set(properties) - set(property_names)
        if unknown:
            raise ValidationError('unknown message properties: ' + ', '.join(sorted(unknown)))

        for name in property_names:
            value = properties.get(name)
            if value is not None:
                values[name] = value
    else:
        for name in property_names:
            value = getattr(properties, name, None)
            if value is not None:
                values[name] = value

    return pika.spec.BasicProperties(**values)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
