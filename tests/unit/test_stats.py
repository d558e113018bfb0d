"""부하 통계 집계 단위 테스트"""

import threading

from ec2auth.harness.stats import (
    AtomicCounter,
    ErrorTally,
    LoadStatistics,
    ReadWriteLock,
    WindowReport,
    failure_percent,
)


def _run_concurrently(target, workers: int = 8) -> None:
    threads = [threading.Thread(target=target) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


class TestAtomicCounter:
    """원자적 카운터 테스트"""

    def test_concurrent_adds_not_lost(self):
        """동시 증가에서도 갱신 손실 없음"""
        # Arrange
        counter = AtomicCounter()

        def work():
            for _ in range(1000):
                counter.add()

        # Act
        _run_concurrently(work)

        # Assert
        assert counter.value == 8000

    def test_swap_returns_previous(self):
        """swap은 이전 값을 반환"""
        counter = AtomicCounter(5)

        assert counter.swap(0) == 5
        assert counter.value == 0

    def test_add_returns_new_value(self):
        """add는 새 값을 반환"""
        counter = AtomicCounter()

        assert counter.add() == 1
        assert counter.add(-1) == 0


class TestReadWriteLock:
    """읽기/쓰기 락 테스트"""

    def test_readers_share_lock(self):
        """여러 읽기 스레드가 동시에 진입"""
        # Arrange
        lock = ReadWriteLock()
        barrier = threading.Barrier(2, timeout=5)
        entered = []

        def reader():
            with lock.read_locked():
                barrier.wait()
                entered.append(True)

        # Act
        _run_concurrently(reader, workers=2)

        # Assert
        assert entered == [True, True]

    def test_writer_excludes_readers(self):
        """쓰기 중에는 읽기가 대기"""
        # Arrange
        lock = ReadWriteLock()
        events = []
        writer_inside = threading.Event()

        def reader():
            writer_inside.wait(5)
            with lock.read_locked():
                events.append("read")

        # Act
        thread = threading.Thread(target=reader)
        thread.start()
        with lock.write_locked():
            writer_inside.set()
            thread.join(0.05)
            events.append("write")
        thread.join(5)

        # Assert
        assert events == ["write", "read"]


class TestErrorTally:
    """실패 유형 집계 테스트"""

    def test_concurrent_increments(self):
        """동시 집계"""
        # Arrange
        tally = ErrorTally()

        def work():
            for _ in range(500):
                tally.increment("ConnectError")

        # Act
        _run_concurrently(work, workers=4)

        # Assert
        assert tally.snapshot() == {"ConnectError": 2000}

    def test_snapshot_is_copy(self):
        """스냅샷 변경은 원본에 영향 없음"""
        tally = ErrorTally()
        tally.increment("x")

        tally.snapshot()["x"] = 99

        assert tally.snapshot() == {"x": 1}


class TestFailurePercent:
    """실패율 계산 테스트"""

    def test_zero_attempts(self):
        """시도가 없으면 0%"""
        assert failure_percent(0, 0) == 0

    def test_integer_division(self):
        """정수 백분율"""
        assert failure_percent(1, 3) == 33
        assert failure_percent(5, 5) == 100

    def test_capped_at_hundred(self):
        """주기 경계에서 실패가 시도보다 많아도 100%를 넘지 않음"""
        assert failure_percent(3, 2) == 100

        report = WindowReport(requests=1, failures=2, total_requests=2, total_failures=2)
        assert report.failure_percent == 100

    def test_report_properties(self):
        """보고서 백분율 속성"""
        report = WindowReport(requests=4, failures=1, total_requests=10, total_failures=5)

        assert report.failure_percent == 25
        assert report.total_failure_percent == 50


class TestLoadStatistics:
    """전체 통계 테스트"""

    def test_exact_totals_under_concurrency(self):
        """N회 시도, F회 실패를 정확히 집계"""
        # Arrange
        stats = LoadStatistics()

        def work():
            for i in range(100):
                if i % 4 == 0:
                    stats.record_failure("Timeout")
                else:
                    stats.record_success()

        # Act
        _run_concurrently(work)
        report = stats.roll_window()

        # Assert
        assert report.total_requests == 800
        assert report.total_failures == 200
        assert report.requests == 800
        assert report.failures == 200
        assert report.errors == {"Timeout": 200}

    def test_roll_window_resets_window_only(self):
        """주기 카운터만 초기화"""
        # Arrange
        stats = LoadStatistics()
        stats.record_success()
        stats.record_failure()

        # Act
        first = stats.roll_window()
        second = stats.roll_window()

        # Assert
        assert (first.requests, first.failures) == (2, 1)
        assert (second.requests, second.failures) == (0, 0)
        assert (second.total_requests, second.total_failures) == (2, 1)

    def test_failure_without_category_not_tallied(self):
        """유형 없는 실패는 집계하지 않음"""
        stats = LoadStatistics()

        stats.record_failure(None)

        assert stats.roll_window().errors == {}

    def test_totals_never_below_window(self):
        """보고 중 동시 기록이 있어도 누적 값은 주기 값 이상"""
        # Arrange
        stats = LoadStatistics()
        stop = threading.Event()
        violations = []

        def writer():
            while not stop.is_set():
                stats.record_failure()

        thread = threading.Thread(target=writer)
        thread.start()

        # Act
        try:
            for _ in range(200):
                report = stats.roll_window()
                if report.total_requests < report.requests:
                    violations.append(report)
        finally:
            stop.set()
            thread.join()

        # Assert
        assert violations == []
