import importlib

import pytest

from mqchannel import config


@pytest.fixture
def environment(monkeypatch):
    yield monkeypatch
    monkeypatch.undo()
    importlib.reload(config)


def test_defaults(environment):
    for name in ('MQCHANNEL_CONTINUATION_TIMEOUT', 'MQCHANNEL_CLOSE_TIMEOUT',
                 'MQCHANNEL_CHANNEL_MAX', 'MQCHANNEL_FRAME_MAX',
                 'MQCHANNEL_DISPATCH_WORKERS'):
        environment.delenv(name, raising=False)

    importlib.reload(config)

    assert config.continuation_timeout == 20.0
    assert config.close_timeout == 5.0
    assert config.channel_max == 2047
    assert config.frame_max == 131072
    assert config.dispatch_workers == 8


def test_override(environment):
    environment.setenv('MQCHANNEL_CONTINUATION_TIMEOUT', '2.5')
    environment.setenv('MQCHANNEL_CHANNEL_MAX', '16')
    environment.setenv('MQCHANNEL_DISPATCH_WORKERS', ' ')

    importlib.reload(config)

    assert config.continuation_timeout == 2.5
    assert config.channel_max == 16
    assert config.dispatch_workers == 8


def test_not_a_number(environment):
    environment.setenv('MQCHANNEL_FRAME_MAX', 'large')

    with pytest.raises(ValueError):
        importlib.reload(config)


def test_negative(environment):
    environment.setenv('MQCHANNEL_CLOSE_TIMEOUT', '-1')

    with pytest.raises(ValueError):
        importlib.reload(config)


def test_out_of_range(environment):
    environment.setenv('MQCHANNEL_CHANNEL_MAX', '70000')

    with pytest.raises(ValueError):
        importlib.reload(config)


def test_channel_uses_configured_timeout(environment, transport):
    environment.setenv('MQCHANNEL_CONTINUATION_TIMEOUT', '3')
    importlib.reload(config)

    import mqchannel
    connection = mqchannel.Connection(transport)
    channel = connection.channel()

    assert channel.continuation_timeout == 3.0

    connection.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
