import pytest

from server_timing import ServerTiming


class FakeClock:
    """Monotonic nanosecond clock that only moves when told to."""

    def __init__(self, now: int = 1_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += int(round(ms * 1_000_000))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timing(clock):
    return ServerTiming(clock=clock)
