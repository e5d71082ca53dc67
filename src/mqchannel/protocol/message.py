""" Class representations of what a channel hands back to its caller: a
    message retrieved or delivered from a queue, the reply to a queue
    declaration, and the tagged result of a Basic.Get.
"""


class Message:
    """ A message received from the broker, either via a consumer delivery
        or a Basic.Get. The *properties* are the
        :class:`pika.spec.BasicProperties` carried in the content header,
        and the *body* is the reassembled content as bytes.

        A delivered message has a *consumer_tag*; a retrieved message has a
        *message_count*, the number of messages remaining in the queue. The
        other attribute is None.
    """

    def __init__(self, body, properties, delivery_tag, redelivered, exchange, routing_key, consumer_tag=None, message_count=None):

        self.body = body
        self.properties = properties
        self.delivery_tag = delivery_tag
        self.redelivered = redelivered
        self.exchange = exchange
        self.routing_key = routing_key
        self.consumer_tag = consumer_tag
        self.message_count = message_count


    def __repr__(self):
        return '<%s delivery_tag=%s exchange=%r routing_key=%r body=%d bytes>' % (
            self.__class__.__name__, self.delivery_tag, self.exchange,
            self.routing_key, len(self.body))


    @classmethod
    def from_deliver(cls, method, properties, body):
        return cls(body, properties, method.delivery_tag, method.redelivered,
                   method.exchange, method.routing_key,
                   consumer_tag=method.consumer_tag)


    @classmethod
    def from_get(cls, method, properties, body):
        return cls(body, properties, method.delivery_tag, method.redelivered,
                   method.exchange, method.routing_key,
                   message_count=method.message_count)


# end of class Message



class QueueDeclareOk:
    """ The broker's answer to a queue declaration: the queue name (useful
        when the broker generated it), and the current message and consumer
        counts for the queue.
    """

    def __init__(self, queue, message_count, consumer_count):

        self.queue = queue
        self.message_count = message_count
        self.consumer_count = consumer_count


    def __iter__(self):
        return iter((self.queue, self.message_count, self.consumer_count))


    def __repr__(self):
        return '<%s queue=%r message_count=%d consumer_count=%d>' % (
            self.__class__.__name__, self.queue, self.message_count,
            self.consumer_count)


    @classmethod
    def from_method(cls, method):
        return cls(method.queue, method.message_count, method.consumer_count)


# end of class QueueDeclareOk



class GetResult:
    """ Base class for the outcome of a Basic.Get. Test the *found*
        attribute, or use isinstance() against :class:`Found`.
    """

    found = False
    message = None

    def __bool__(self):
        return self.found


class Found(GetResult):
    """ A Basic.Get that retrieved a *message*.
    """

    found = True

    def __init__(self, message):
        self.message = message

    def __repr__(self):
        return '<Found %r>' % (self.message,)


class _Empty(GetResult):
    """ A Basic.Get against a queue that had nothing to offer.
    """

    def __repr__(self):
        return '<Empty>'


EMPTY = _Empty()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
