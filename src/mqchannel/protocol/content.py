""" Reassembly of content-bearing methods. Basic.Deliver, Basic.GetOk and
    Basic.Return arrive as a method frame, a content header frame, and zero
    or more body frames; the :class:`Assembler` collects them and hands
    back the complete message once the last body fragment is in.
"""

import pika.frame
import pika.spec

from ..errors import FrameError
from . import fields


class Assembler:
    """ Track the content-bearing method currently being received on one
        channel. Frames for a single message are never interleaved with
        other frames on the same channel; anything else is a
        :class:`mqchannel.errors.FrameError`.
    """

    def __init__(self):
        self._reset()


    @property
    def in_progress(self):
        return self._method is not None


    def process(self, frame_value):
        """ Accept one frame. Returns a (method, properties, body) tuple when
            *frame_value* completes a message, otherwise None.
        """

        if isinstance(frame_value, pika.frame.Method):
            if self._method is not None:
                raise FrameError('%s arrived while %s content was incomplete' % (
                    frame_value.method.NAME, self._method.NAME))

            if pika.spec.has_content(frame_value.method.INDEX):
                self._method = frame_value.method
                return None

            raise FrameError(frame_value.method.NAME + ' does not carry content')

        if self._method is None:
            raise FrameError('content frame with no preceding method: ' + repr(frame_value))

        if isinstance(frame_value, pika.frame.Header):
            if self._properties is not None:
                raise FrameError('duplicate content header for ' + self._method.NAME)

            self._properties = frame_value.properties
            self._expected = frame_value.body_size

            if self._expected == 0:
                return self._finish()
            return None

        if isinstance(frame_value, pika.frame.Body):
            if self._properties is None:
                raise FrameError('content body before header for ' + self._method.NAME)

            self._received += len(frame_value.fragment)
            self._fragments.append(frame_value.fragment)

            if self._received == self._expected:
                return self._finish()
            if self._received > self._expected:
                raise FrameError('content body too long: %d bytes, expected %d' % (
                    self._received, self._expected))
            return None

        raise FrameError('unexpected frame: ' + repr(frame_value))


    def _finish(self):

        content = (self._method, self._properties, b''.join(self._fragments))
        self._reset()
        return content


    def _reset(self):

        self._method = None
        self._properties = None
        self._expected = 0
        self._received = 0
        self._fragments = list()


# end of class Assembler


def frames(channel_number, method, properties=None, body=None, frame_max=131072):
    """ Return the list of frames that carry *method* on the wire. If the
        method carries content the list also includes the content header
        and as many body frames as needed to stay within *frame_max*.
    """

    parts = [pika.frame.Method(channel_number, method)]

    if properties is None and body is None:
        return parts

    if properties is None:
        properties = pika.spec.BasicProperties()
    if body is None:
        body = b''

    parts.append(pika.frame.Header(channel_number, len(body), properties))

    chunk = frame_max - fields.FRAME_OVERHEAD
    for offset in range(0, len(body), chunk):
        parts.append(pika.frame.Body(channel_number, body[offset:offset + chunk]))

    return parts


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
