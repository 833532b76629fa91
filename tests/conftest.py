import itertools

import pytest

from dispatcher import EventDispatcher


class Outbox:
    """Collects (session_id, event, data) frames instead of writing to sockets."""

    def __init__(self):
        self.frames = []

    def __call__(self, session_id, event, data):
        self.frames.append((session_id, event, data))

    def to(self, session_id):
        return [(event, data) for sid, event, data in self.frames if sid == session_id]

    def events(self, session_id):
        return [event for event, _ in self.to(session_id)]

    def last(self, session_id):
        return self.to(session_id)[-1]

    def clear(self):
        self.frames.clear()


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    def notify(self, sender, recipient, message):
        self.calls.append((sender.number, recipient.number, message.text))


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    """Deterministic millisecond clock: 1000, 1001, ..."""
    counter = itertools.count(1000)
    return lambda: next(counter)


@pytest.fixture
def dispatcher(outbox, notifier, clock):
    return EventDispatcher(outbox, notifier=notifier, clock=clock)


@pytest.fixture
def register(dispatcher):
    def _register(session_id, number, **profile):
        dispatcher.dispatch(session_id, "register", {"number": number, **profile})
    return _register
