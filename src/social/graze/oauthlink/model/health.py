import asyncio


class HealthGauge:
    """
    Readiness gauge fed by account store failures.

    Every store failure surfaced to a caller bumps the gauge, and a background task
    lowers it by one on a fixed interval. A burst of failures (the database going away,
    a migration that was not applied) pushes the value over the threshold and the
    readiness check starts answering 503 until the failures stop and the gauge drains.
    Conflicts are regular outcomes and never touch the gauge.
    """

    def __init__(self, value: int = 0, health_threshold: int = 100) -> None:
        self._value = value
        self._health_threshold = health_threshold
        self._lock = asyncio.Lock()

    @property
    def value(self) -> int:
        return self._value

    async def womp(self, d=1) -> int:
        async with self._lock:
            self._value += int(d)
            return self._value

    async def tick(self) -> None:
        async with self._lock:
            self._value = max(self._value - 1, 0)

    async def is_healthy(self) -> bool:
        async with self._lock:
            return self._value <= self._health_threshold
