import threading
import time

import pytest

from mqchannel.errors import ChannelClosedError, ConfirmTimeout, NackedError
from mqchannel.session.confirms import ConfirmTracker


def test_sequence_numbers():
    tracker = ConfirmTracker()
    assert tracker.next_sequence == 1
    assert tracker.lowest is None

    assert tracker.register() == 1
    assert tracker.register() == 2
    assert tracker.register() == 3

    assert tracker.next_sequence == 4
    assert tracker.lowest == 1
    assert len(tracker) == 3


def test_single_ack():
    tracker = ConfirmTracker()
    for number in range(3):
        tracker.register()

    assert tracker.ack(2) == [2]
    assert tracker.lowest == 1
    assert len(tracker) == 2

    # Unknown or already resolved tags are ignored.
    assert tracker.ack(2) == []
    assert tracker.ack(17) == []


def test_multiple_ack():
    tracker = ConfirmTracker()
    for number in range(5):
        tracker.register()

    tracker.ack(2)
    assert tracker.ack(4, multiple=True) == [1, 3, 4]
    assert tracker.lowest == 5


def test_wait_with_nothing_outstanding():
    tracker = ConfirmTracker()
    assert tracker.wait(0) == (True, False)


def test_wait_reports_and_resets_nack():
    tracker = ConfirmTracker()
    tracker.register()
    tracker.register()

    tracker.ack(1)
    tracker.nack(2)

    assert tracker.wait(1) == (False, False)

    # The flag was reset by the completed wait.
    tracker.register()
    tracker.ack(3)
    assert tracker.wait(1) == (True, False)


def test_wait_timeout():
    tracker = ConfirmTracker()
    tracker.register()

    begin = time.monotonic()
    assert tracker.wait(0.1) == (False, True)
    assert time.monotonic() - begin >= 0.1


def test_wait_released_by_ack():
    tracker = ConfirmTracker()
    tracker.register()
    tracker.register()

    timer = threading.Timer(0.05, tracker.ack, args=(2,), kwargs=dict(multiple=True))
    timer.start()

    assert tracker.wait(2) == (True, False)
    timer.join()


def test_wait_or_die_nack_is_immediate():
    tracker = ConfirmTracker()
    for number in range(3):
        tracker.register()

    tracker.nack(1)

    # Entries 2 and 3 are still outstanding; the nack is enough.
    with pytest.raises(NackedError):
        tracker.wait_or_die(5)

    assert len(tracker) == 2


def test_multiple_nack_with_later_entry_in_flight():
    tracker = ConfirmTracker()
    for number in range(6):
        tracker.register()

    assert tracker.nack(5, multiple=True) == [1, 2, 3, 4, 5]
    assert tracker.lowest == 6

    begin = time.monotonic()
    with pytest.raises(NackedError):
        tracker.wait_or_die(5)

    assert time.monotonic() - begin < 1


def test_wait_or_die_timeout():
    tracker = ConfirmTracker()
    tracker.register()

    with pytest.raises(ConfirmTimeout):
        tracker.wait_or_die(0.05)


def test_wait_or_die_success():
    tracker = ConfirmTracker()
    tracker.register()
    tracker.ack(1)

    tracker.wait_or_die(1)


def test_fail_all_releases_waiters():
    tracker = ConfirmTracker()
    tracker.register()
    tracker.register()

    results = list()

    def waiter():
        results.append(tracker.wait(5))

    thread = threading.Thread(target=waiter)
    thread.start()

    time.sleep(0.05)
    tracker.fail_all()
    thread.join(2)

    assert results == [(False, False)]
    assert len(tracker) == 0


def test_fail_all_error_raised_by_wait_or_die():
    tracker = ConfirmTracker()
    tracker.register()

    error = ChannelClosedError('closed by the broker')
    tracker.fail_all(error)

    # The closing error wins over the nack the failure also records.
    with pytest.raises(ChannelClosedError) as raised:
        tracker.wait_or_die(1)
    assert raised.value is error

    tracker.fail_all(ChannelClosedError('later'))
    with pytest.raises(ChannelClosedError) as raised:
        tracker.wait_or_die(1)
    assert raised.value is error

    assert tracker.wait(1) == (False, False)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
