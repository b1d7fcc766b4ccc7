import time


class SystemClock:
    def now(self) -> int:
        return int(time.time() * 1000)


class FixedClock:
    """A clock that only moves when told to. Used for deterministic timestamps."""

    def __init__(self, start: int = 0):
        self.current = start

    def now(self) -> int:
        return self.current

    def advance(self, millis: int = 1) -> int:
        self.current += millis
        return self.current
