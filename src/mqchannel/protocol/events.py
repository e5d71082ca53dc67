""" Notifications a channel raises to its observers. There is one class per
    kind of event, all sharing the :class:`Notification` base; observers
    subscribe by *kind* and receive the notification instance as their only
    argument.
"""

ACK = 'ack'
NACK = 'nack'
RETURN = 'return'
FLOW = 'flow'
RECOVER_OK = 'recover-ok'
CONSUMER_CANCELLED = 'consumer-cancelled'
CALLBACK_EXCEPTION = 'callback-exception'
SHUTDOWN = 'shutdown'

kinds = (ACK, NACK, RETURN, FLOW, RECOVER_OK, CONSUMER_CANCELLED, CALLBACK_EXCEPTION, SHUTDOWN)


class Notification:

    kind = None
    fields = ()

    def __repr__(self):
        values = list()
        for field in self.fields:
            values.append('%s=%r' % (field, getattr(self, field)))

        return '<%s %s>' % (self.__class__.__name__, ' '.join(values))


class BasicAck(Notification):
    """ The broker confirmed one publish, or every publish up to and
        including *delivery_tag* if *multiple* is set.
    """

    kind = ACK
    fields = ('delivery_tag', 'multiple')

    def __init__(self, delivery_tag, multiple):
        self.delivery_tag = delivery_tag
        self.multiple = multiple


class BasicNack(Notification):
    """ The broker refused one or more publishes; see :class:`BasicAck`.
    """

    kind = NACK
    fields = ('delivery_tag', 'multiple', 'requeue')

    def __init__(self, delivery_tag, multiple, requeue):
        self.delivery_tag = delivery_tag
        self.multiple = multiple
        self.requeue = requeue


class BasicReturn(Notification):
    """ A mandatory publish could not be routed and came back.
    """

    kind = RETURN
    fields = ('reply_code', 'reply_text', 'exchange', 'routing_key')

    def __init__(self, reply_code, reply_text, exchange, routing_key, properties, body):
        self.reply_code = reply_code
        self.reply_text = reply_text
        self.exchange = exchange
        self.routing_key = routing_key
        self.properties = properties
        self.body = body


class FlowControl(Notification):
    """ The broker asked the client to pause (*active* is False) or resume
        publishing on the channel.
    """

    kind = FLOW
    fields = ('active',)

    def __init__(self, active):
        self.active = active


class BasicRecoverOk(Notification):

    kind = RECOVER_OK


class ConsumerCancelled(Notification):
    """ The broker cancelled a consumer, for example because its queue was
        deleted.
    """

    kind = CONSUMER_CANCELLED
    fields = ('consumer_tag',)

    def __init__(self, consumer_tag):
        self.consumer_tag = consumer_tag


class CallbackException(Notification):
    """ A consumer or event handler raised. The *detail* dictionary has a
        'context' entry describing what was being called, and a 'debug'
        entry with the formatted traceback.
    """

    kind = CALLBACK_EXCEPTION
    fields = ('exception', 'context')

    def __init__(self, exception, detail):
        self.exception = exception
        self.detail = detail

    @property
    def context(self):
        return self.detail.get('context')


class Shutdown(Notification):
    """ The channel is closed; *reason* is its
        :class:`mqchannel.protocol.reason.ShutdownReason`.
    """

    kind = SHUTDOWN
    fields = ('reason',)

    def __init__(self, reason):
        self.reason = reason


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
