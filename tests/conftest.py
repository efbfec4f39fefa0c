import pytest

from tests.manager_helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
