""" The consumer interface. A channel calls these methods from its dispatch
    worker threads, never from the connection's reader thread. Calls for one
    consumer tag arrive one at a time, in the order the events arrived; a
    consumer bound to several tags may see calls for different tags at once.
"""

import threading


class Consumer:
    """ Base class for consumers. Subclasses override
        :func:`handle_delivery`; the remaining hooks keep track of which
        consumer tags are active and why the channel closed, and can be
        extended as needed.

        :ivar consumer_tags: The tags this consumer is currently bound to.
        :ivar shutdown_reason: The channel's close reason, once it closed.
    """

    def __init__(self):

        self.consumer_tags = list()
        self.shutdown_reason = None
        self._lock = threading.Lock()


    @property
    def is_running(self):
        with self._lock:
            return len(self.consumer_tags) > 0


    def handle_consume_ok(self, consumer_tag):
        """ The broker accepted the Basic.Consume for *consumer_tag*.
        """

        with self._lock:
            self.consumer_tags.append(consumer_tag)


    def handle_cancel_ok(self, consumer_tag):
        """ A cancel requested by this client completed.
        """

        self._remove(consumer_tag)


    def handle_cancel(self, consumer_tag):
        """ The broker cancelled *consumer_tag* on its own initiative, for
            example because the queue was deleted.
        """

        self._remove(consumer_tag)


    def handle_delivery(self, channel, message):
        """ A *message* (a :class:`mqchannel.protocol.message.Message`) was
            delivered on *channel*. Unless the consumer was registered with
            auto_ack, the message must be acknowledged via
            :func:`mqchannel.channel.Channel.basic_ack`.
        """

        pass


    def handle_shutdown(self, reason):
        """ The channel closed. This is the last call, made once per consumer
            after the work queued for all of its tags has run.
        """

        with self._lock:
            self.shutdown_reason = reason
            del self.consumer_tags[:]


    def _remove(self, consumer_tag):

        with self._lock:
            try:
                self.consumer_tags.remove(consumer_tag)
            except ValueError:
                pass


# end of class Consumer



class CallbackConsumer(Consumer):
    """ Adapt a plain *callback* to the consumer interface. The callback is
        invoked with the same arguments as :func:`Consumer.handle_delivery`.
    """

    def __init__(self, callback):

        if callable(callback):
            pass
        else:
            raise TypeError('consumer callback must be callable')

        Consumer.__init__(self)
        self.callback = callback


    def __repr__(self):
        return '<%s %r>' % (self.__class__.__name__, self.callback)


    def handle_delivery(self, channel, message):
        self.callback(channel, message)


# end of class CallbackConsumer


def adapt(consumer):
    """ Return *consumer* if it already implements the consumer interface,
        otherwise wrap it in a :class:`CallbackConsumer`.
    """

    if isinstance(consumer, Consumer):
        return consumer

    return CallbackConsumer(consumer)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
