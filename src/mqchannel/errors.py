""" Exceptions raised by mqchannel. Local validation errors leave the channel
    usable; everything else is tied to the channel's close reason, so that
    every observer of a dead channel sees the same story.
"""


class ChannelError(Exception):
    """ Base class for all channel-level errors.
    """


class ValidationError(ChannelError, ValueError):
    """ An argument was rejected locally, before anything was sent to the
        broker. The channel remains open.
    """


class NotInConfirmMode(ChannelError):
    """ A confirm wait was requested on a channel that never enabled
        publisher confirms.
    """


class NoFreeChannels(ChannelError):
    """ Every channel number permitted by the connection is in use.
    """


class UnroutableDelivery(ChannelError):
    """ A delivery arrived for a consumer tag that is not registered, and no
        default consumer was set to catch it.
    """

    def __init__(self, consumer_tag, delivery_tag=None):

        self.consumer_tag = consumer_tag
        self.delivery_tag = delivery_tag

        text = 'unexpected delivery for consumer tag %r' % (consumer_tag,)
        if delivery_tag is not None:
            text += ' (delivery tag %d)' % (delivery_tag)

        ChannelError.__init__(self, text)


class FrameError(ChannelError):
    """ Inbound frames arrived in an order the protocol does not allow, for
        example a content body with no preceding header.
    """


class UnexpectedReplyError(ChannelError):
    """ The next synchronous reply on the channel did not match what the
        oldest pending request was waiting for.
    """

    def __init__(self, expected, received):

        self.expected = expected
        self.received = received

        if expected:
            names = ', '.join(_name(kind) for kind in expected)
        else:
            names = 'nothing'

        text = 'expected %s, received %s' % (names, _name(received))
        ChannelError.__init__(self, text)


class ChannelClosedError(ChannelError):
    """ The channel is closing or closed. The *reason* attribute is the
        :class:`mqchannel.protocol.reason.ShutdownReason` captured when the
        channel first left the open state.
    """

    def __init__(self, reason):

        self.reason = reason
        ChannelError.__init__(self, 'channel closed: ' + str(reason))


class ContinuationTimeout(ChannelError, TimeoutError):
    """ No reply arrived for a synchronous request within the channel's
        continuation timeout. The channel is closed as a consequence.
    """


class ConfirmTimeout(ChannelError, TimeoutError):
    """ Outstanding publishes were not confirmed before the requested
        timeout expired.
    """


class NackedError(ChannelError):
    """ The broker rejected (nacked) at least one published message.
    """


def _name(kind):

    try:
        return kind.NAME
    except AttributeError:
        return repr(kind)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
