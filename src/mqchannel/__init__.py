""" Client-side AMQP 0-9-1 channels. One :class:`Connection` carries many
    numbered :class:`Channel` instances over a single frame transport; each
    channel offers blocking request/reply operations, publisher confirms,
    and consumer dispatch on top of the asynchronous frame stream.
"""

# Submodules used by multiple other components.

from . import errors
from . import config
from . import protocol
from . import session
from . import transport

# Primary public-facing interfaces.

from .channel import Channel
from .connection import Connection
from .consumer import Consumer, CallbackConsumer
from .protocol.message import EMPTY, Found, Message, QueueDeclareOk
from .protocol.reason import ShutdownReason
from .transport.stream import StreamTransport

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
