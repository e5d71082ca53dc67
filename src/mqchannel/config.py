""" Default settings for connections and channels. Every value can be
    overridden from the environment at import time, and again on a per
    instance basis via constructor arguments.

    ============================== ========== =================================
    Environment variable           Default    Meaning
    ============================== ========== =================================
    MQCHANNEL_CONTINUATION_TIMEOUT 20         Seconds to wait for a reply to a
                                              synchronous request.
    MQCHANNEL_CLOSE_TIMEOUT        5          Seconds to wait for Channel.CloseOk.
    MQCHANNEL_CHANNEL_MAX          2047       Highest channel number allocated.
    MQCHANNEL_FRAME_MAX            131072     Largest frame, in bytes.
    MQCHANNEL_DISPATCH_WORKERS     8          Consumer worker threads per
                                              channel.
    ============================== ========== =================================
"""

import os

from .protocol import fields


def _number(name, default, kind=float):
    """ Interpret the environment variable *name* as a number of type *kind*,
        falling back to *default* if it is not set.
    """

    raw = os.environ.get(name)

    if raw is None or raw.strip() == '':
        return default

    try:
        value = kind(raw)
    except ValueError:
        raise ValueError("%s must be a number, not %r" % (name, raw))

    if value < 0:
        raise ValueError("%s must not be negative: %r" % (name, raw))

    return value


continuation_timeout = _number('MQCHANNEL_CONTINUATION_TIMEOUT', 20.0)
close_timeout = _number('MQCHANNEL_CLOSE_TIMEOUT', 5.0)
channel_max = _number('MQCHANNEL_CHANNEL_MAX', 2047, int)
frame_max = _number('MQCHANNEL_FRAME_MAX', 131072, int)
dispatch_workers = _number('MQCHANNEL_DISPATCH_WORKERS', 8, int)

if channel_max < 1 or channel_max > fields.MAX_CHANNEL_NUMBER:
    raise ValueError('MQCHANNEL_CHANNEL_MAX out of range: %d' % (channel_max))

if frame_max <= fields.FRAME_OVERHEAD:
    raise ValueError('MQCHANNEL_FRAME_MAX too small: %d' % (frame_max))

if dispatch_workers < 1:
    raise ValueError('MQCHANNEL_DISPATCH_WORKERS must be at least 1')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
