import threading
import time

import pytest

from mqchannel.consumer import CallbackConsumer, Consumer
from mqchannel.errors import UnroutableDelivery, ValidationError
from mqchannel.protocol import fields
from mqchannel.protocol.message import Message
from mqchannel.protocol.reason import ShutdownReason
from mqchannel.session.dispatch import Dispatch


def message(consumer_tag, delivery_tag=1, body=b''):
    return Message(body, None, delivery_tag, False, 'exchange', 'key', consumer_tag=consumer_tag)


class Collector(Consumer):

    def __init__(self, delay=0):
        Consumer.__init__(self)
        self.delay = delay
        self.delivered = list()
        self.active = 0
        self.most_active = 0
        self.lock = threading.Lock()

    def handle_delivery(self, channel, message):
        with self.lock:
            self.active += 1
            self.most_active = max(self.most_active, self.active)

        time.sleep(self.delay)

        with self.lock:
            self.active -= 1
            self.delivered.append((channel, message.delivery_tag))


@pytest.fixture
def dispatch():
    dispatch = Dispatch(workers=4)
    yield dispatch
    dispatch.workers.shutdown(wait=True)


def test_register_and_deliver(dispatch):
    consumer = Collector()
    dispatch.register('ctag', consumer)

    assert 'ctag' in dispatch
    assert len(dispatch) == 1
    assert dispatch.tags() == ['ctag']

    dispatch.dispatch('the channel', message('ctag', 7))
    assert dispatch.wait_idle(2) == True

    assert consumer.delivered == [('the channel', 7)]


def test_duplicate_tag(dispatch):
    dispatch.register('ctag', Collector())

    with pytest.raises(ValidationError):
        dispatch.register('ctag', Collector())


def test_unregister(dispatch):
    dispatch.register('ctag', Collector())

    registration = dispatch.unregister('ctag')
    assert registration.consumer_tag == 'ctag'
    assert 'ctag' not in dispatch

    assert dispatch.unregister('ctag') is None


def test_unroutable(dispatch):
    with pytest.raises(UnroutableDelivery) as raised:
        dispatch.dispatch(None, message('nobody', 3))

    assert raised.value.consumer_tag == 'nobody'
    assert raised.value.delivery_tag == 3


def test_default_consumer(dispatch):
    fallback = Collector()
    dispatch.default = fallback
    assert dispatch.default is fallback

    dispatch.dispatch(None, message('nobody', 3))
    dispatch.wait_idle(2)

    assert fallback.delivered == [(None, 3)]


def test_serialized_per_consumer(dispatch):
    consumer = Collector(delay=0.01)
    dispatch.register('ctag', consumer)

    for tag in range(1, 11):
        dispatch.dispatch(None, message('ctag', tag))

    assert dispatch.wait_idle(5) == True

    assert consumer.most_active == 1
    assert [tag for channel, tag in consumer.delivered] == list(range(1, 11))


def test_consumers_run_concurrently(dispatch):
    barrier = threading.Barrier(2, timeout=2)
    passed = list()

    def meet(channel, message):
        barrier.wait()
        passed.append(message.consumer_tag)

    dispatch.register('one', CallbackConsumer(meet))
    dispatch.register('two', CallbackConsumer(meet))

    dispatch.dispatch(None, message('one'))
    dispatch.dispatch(None, message('two'))

    assert dispatch.wait_idle(5) == True
    assert sorted(passed) == ['one', 'two']


def test_callback_exception_reported():
    failures = list()

    def on_error(exception, detail):
        failures.append((exception, detail))

    dispatch = Dispatch(on_error, workers=1)
    delivered = list()

    def flaky(channel, message):
        if message.delivery_tag == 1:
            raise ValueError('first delivery fails')
        delivered.append(message.delivery_tag)

    consumer = CallbackConsumer(flaky)
    dispatch.register('ctag', consumer)

    dispatch.dispatch(None, message('ctag', 1))
    dispatch.dispatch(None, message('ctag', 2))
    dispatch.wait_idle(2)

    assert delivered == [2]
    assert len(failures) == 1

    exception, detail = failures[0]
    assert isinstance(exception, ValueError)
    assert detail['consumer'] is consumer
    assert 'handle_delivery' in detail['context']
    assert 'first delivery fails' in detail['debug']

    dispatch.workers.shutdown(wait=True)


def test_shutdown_notifies_each_consumer_once():
    dispatch = Dispatch(workers=2)

    shared = Consumer()
    other = Consumer()

    dispatch.register('a', shared)
    dispatch.register('b', shared)
    dispatch.register('c', other)
    dispatch.default = other

    calls = list()
    shared.handle_shutdown = calls.append

    reason = ShutdownReason(fields.APPLICATION, fields.REPLY_SUCCESS, 'Goodbye')
    dispatch.shutdown(reason)
    dispatch.wait_idle(2)

    assert calls == [reason]
    assert other.shutdown_reason is reason
    assert len(dispatch) == 0

    # Idempotent.
    dispatch.shutdown(reason)
    assert calls == [reason]


def test_shutdown_waits_for_every_lane():
    dispatch = Dispatch(workers=4)
    release = threading.Event()
    calls = list()

    class Shared(Consumer):
        def handle_delivery(self, channel, message):
            if message.consumer_tag == 'slow':
                release.wait(2)
            calls.append(('delivery', message.consumer_tag))

        def handle_shutdown(self, reason):
            calls.append(('shutdown', reason))

    consumer = Shared()
    dispatch.register('slow', consumer)
    dispatch.register('fast', consumer)

    dispatch.dispatch(None, message('slow'))
    dispatch.dispatch(None, message('fast'))

    reason = ShutdownReason(fields.APPLICATION, fields.REPLY_SUCCESS, 'Goodbye')
    dispatch.shutdown(reason)

    # The fast lane is done, but the slow one still holds its delivery.
    time.sleep(0.1)
    assert ('shutdown', reason) not in calls

    release.set()
    assert dispatch.wait_idle(2) == True

    assert calls[-1] == ('shutdown', reason)
    assert calls.count(('shutdown', reason)) == 1
    assert sorted(calls[:-1]) == [('delivery', 'fast'), ('delivery', 'slow')]

    dispatch.workers.shutdown(wait=True)


def test_schedule_after_shutdown_is_dropped():
    dispatch = Dispatch(workers=1)
    consumer = Collector()
    registration = dispatch.register('ctag', consumer)

    reason = ShutdownReason(fields.APPLICATION, fields.REPLY_SUCCESS, 'Goodbye')
    dispatch.shutdown(reason)
    dispatch.workers.shutdown(wait=True)

    dispatch.schedule(registration, 'handle_delivery', None, message('ctag'))

    assert dispatch.wait_idle(1) == True
    assert consumer.delivered == []


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
