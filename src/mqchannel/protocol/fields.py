"""Protocol constants.

Keep these in one place to avoid bare numbers and strings in the channel
logic.
"""

# Reply codes, AMQP 0-9-1 section 1.9.

REPLY_SUCCESS = 200
CONTENT_TOO_LARGE = 311
NO_ROUTE = 312
NO_CONSUMERS = 313
CONNECTION_FORCED = 320
INVALID_PATH = 402
ACCESS_REFUSED = 403
NOT_FOUND = 404
RESOURCE_LOCKED = 405
PRECONDITION_FAILED = 406
FRAME_ERROR = 501
SYNTAX_ERROR = 502
COMMAND_INVALID = 503
CHANNEL_ERROR = 504
UNEXPECTED_FRAME = 505
RESOURCE_ERROR = 506
NOT_ALLOWED = 530
NOT_IMPLEMENTED = 540
INTERNAL_ERROR = 541

# Who started the shutdown of a channel.

APPLICATION = "application"
LIBRARY = "library"
PEER = "peer"

# Short strings (names, routing keys, consumer tags) are length-prefixed
# with a single octet.

MAX_SHORT_STRING = 255

# Frame type octet, channel number, payload size, and the frame-end octet.

FRAME_OVERHEAD = 8

MAX_CHANNEL_NUMBER = 65535
MAX_PREFETCH_COUNT = 65535
MAX_PREFETCH_SIZE = 4294967295
