""" The close reason for a channel. A channel stores exactly one of these,
    the first one written; every later error raised by the channel refers
    back to it.
"""

from . import fields


class ShutdownReason:
    """ Describe why a channel left the open state.

        :ivar initiator: One of :data:`fields.APPLICATION`,
            :data:`fields.LIBRARY`, or :data:`fields.PEER`.
        :ivar reply_code: The AMQP reply code, for example 404.
        :ivar reply_text: The human-readable explanation.
        :ivar class_id: The class of the method that caused the close, if any.
        :ivar method_id: The method that caused the close, if any.
        :ivar cause: The local exception that prompted the close, if any.
    """

    initiators = set((fields.APPLICATION, fields.LIBRARY, fields.PEER))

    def __init__(self, initiator, reply_code, reply_text, class_id=0, method_id=0, cause=None):

        if initiator in self.initiators:
            pass
        else:
            raise ValueError('invalid shutdown initiator: ' + repr(initiator))

        self.initiator = initiator
        self.reply_code = int(reply_code)
        self.reply_text = reply_text
        self.class_id = class_id
        self.method_id = method_id
        self.cause = cause


    def __repr__(self):
        return '<%s initiator=%s code=%d text=%r>' % (
            self.__class__.__name__, self.initiator, self.reply_code,
            self.reply_text)


    def __str__(self):
        return '%d %s (%s)' % (self.reply_code, self.reply_text, self.initiator)


    @classmethod
    def from_close(cls, method):
        """ Build a reason from a broker-sent Channel.Close *method*.
        """

        return cls(fields.PEER, method.reply_code, method.reply_text,
                   method.class_id or 0, method.method_id or 0)


# end of class ShutdownReason


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
