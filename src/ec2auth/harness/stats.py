"""부하 테스트 통계 집계 모듈.

여러 워커 스레드가 동시에 증가시키는 카운터와 실패 유형 집계를 제공합니다.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


class AtomicCounter:
    """락으로 보호되는 정수 카운터.

    `add`와 `swap`은 동시 증가와 섞여도 갱신을 잃지 않습니다.
    """

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    def add(self, delta: int = 1) -> int:
        """값을 더하고 새 값을 반환합니다."""
        with self._lock:
            self._value += delta
            return self._value

    def swap(self, value: int = 0) -> int:
        """값을 바꾸고 이전 값을 반환합니다."""
        with self._lock:
            previous, self._value = self._value, value
            return previous

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class ReadWriteLock:
    """쓰기 우선 읽기/쓰기 락.

    여러 읽기 스레드가 동시에 들어갈 수 있고, 쓰기는 배타적입니다.
    대기 중인 쓰기가 있으면 새 읽기를 막아 쓰기 기아를 방지합니다.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ErrorTally:
    """실패 유형별 누적 개수."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._lock = ReadWriteLock()

    def increment(self, category: str) -> None:
        with self._lock.write_locked():
            self._counts[category] = self._counts.get(category, 0) + 1

    def snapshot(self) -> dict[str, int]:
        with self._lock.read_locked():
            return dict(self._counts)


def failure_percent(failures: int, attempts: int) -> int:
    """정수 실패율 (시도가 없으면 0, 최대 100)."""
    if attempts == 0:
        return 0
    return min(100, 100 * failures // attempts)


@dataclass(frozen=True)
class WindowReport:
    """보고 주기 1회분의 통계 스냅샷.

    Attributes:
        requests: 이번 주기 시도 수
        failures: 이번 주기 실패 수
        total_requests: 누적 시도 수
        total_failures: 누적 실패 수
        errors: 실패 유형별 누적 개수
    """

    requests: int
    failures: int
    total_requests: int
    total_failures: int
    errors: dict[str, int] = field(default_factory=dict)

    @property
    def failure_percent(self) -> int:
        return failure_percent(self.failures, self.requests)

    @property
    def total_failure_percent(self) -> int:
        return failure_percent(self.total_failures, self.total_requests)


class LoadStatistics:
    """부하 테스트 전체 통계.

    누적 카운터를 주기 카운터보다 먼저 증가시켜
    어느 시점에 관찰해도 누적 값이 주기 값 이상이 되도록 합니다.
    """

    def __init__(self) -> None:
        self.requests_this_window = AtomicCounter()
        self.failures_this_window = AtomicCounter()
        self.total_requests = AtomicCounter()
        self.total_failures = AtomicCounter()
        self.error_tally = ErrorTally()

    def record_success(self) -> None:
        self.total_requests.add()
        self.requests_this_window.add()

    def record_failure(self, category: str | None = None) -> None:
        """실패 1건을 기록합니다.

        Args:
            category: 실패 유형 (None이면 유형 집계를 건너뜀)
        """
        self.total_requests.add()
        self.total_failures.add()
        self.requests_this_window.add()
        self.failures_this_window.add()
        if category is not None:
            self.error_tally.increment(category)

    def roll_window(self) -> WindowReport:
        """주기 카운터를 0으로 바꾸고 이번 주기 보고서를 만듭니다.

        주기 경계는 근사치입니다. 교체 중에 기록된 실패는 해당 시도와
        다른 주기에 들어갈 수 있어 한 주기의 실패 수가 시도 수보다 클 수
        있습니다. 주기 실패율은 100%로 제한됩니다. 누적 값은 정확합니다.
        """
        failures = self.failures_this_window.swap(0)
        requests = self.requests_this_window.swap(0)
        return WindowReport(
            requests=requests,
            failures=failures,
            total_requests=self.total_requests.value,
            total_failures=self.total_failures.value,
            errors=self.error_tally.snapshot(),
        )
