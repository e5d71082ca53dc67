""" The per-channel engine: request/reply correlation, publisher confirm
    tracking, consumer dispatch, and event fan-out. Nothing in here is ever
    shared between channels.
"""

from . import continuation
from . import confirms
from . import dispatch
from . import fanout

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
