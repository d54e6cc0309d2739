import pytest

from pyreflux import Store

from support import RecordingSubscriber, app_reducer


@pytest.fixture
def store():
    return Store(app_reducer)


@pytest.fixture
def subscriber():
    return RecordingSubscriber()
