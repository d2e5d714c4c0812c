# tests/conftest.py
import pytest

from fakes import FakeClock, FakeResource, FakeScreen


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def resource():
    return FakeResource()


@pytest.fixture
def screen():
    return FakeScreen()
