from . import fields
from . import reason
from . import message
from . import events
from . import content


"""
mqchannel Protocol Layer
========================

This package defines the vocabulary the channel engine speaks: the values
handed back to callers and the notifications raised to observers. It also
reassembles content-bearing methods from their frames.

The AMQP 0-9-1 method classes and the byte-level frame codec come
from :mod:`pika.spec` and :mod:`pika.frame`; nothing in this package
encodes or decodes bytes.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

User Code
    │
    ▼
Channel (channel.py)
    Synchronous-looking operation surface
    - queue_declare(), basic_publish(), basic_consume(), ...
    Owns the open -> closing -> closed lifecycle

    │
    ▼
Session Engine (session/)
    Per-channel machinery, never shared across channels
    - continuation.py: FIFO request/reply correlation
    - confirms.py:     publisher confirm tracking
    - dispatch.py:     consumer deliveries, off the read path
    - fanout.py:       event notifications, write-once shutdown

    │
    ▼
Protocol Vocabulary (this package)
    - fields.py:   reply codes, initiators, limits
    - reason.py:   ShutdownReason
    - message.py:  Message, QueueDeclareOk, Found / EMPTY
    - events.py:   notification classes
    - content.py:  method + header + body reassembly

---------------------------------------------------------------------

Below the Channel (for context)
-------------------------------

Connection (connection.py)
    Channel number allocation, inbound frame routing

Transport (transport/)
    Moves pika frames
    - StreamTransport over a connected socket

---------------------------------------------------------------------

Design Principles
-----------------

1. Transport Agnostic
   The channel engine only ever sees decoded pika frames.

2. Replies Are Positional
   The broker answers synchronous requests on a channel in the order they
   were sent; no correlation identifier is needed beyond that order.

3. One Terminal Story
   A channel has one close reason, written once; pending requests and
   confirm waiters fail with that same reason.

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
