"""주기 통계 보고 백그라운드 스레드 모듈."""

import threading

from ec2auth.constants import Reporting
from ec2auth.harness.stats import LoadStatistics, WindowReport
from ec2auth.logging import get_logger

logger = get_logger(__name__)


def format_report(report: WindowReport, show_errors: bool = False) -> list[str]:
    """보고서를 로그 줄 목록으로 만듭니다.

    Example:
        >>> format_report(WindowReport(10, 1, 30, 3))
        ['10 rps, 1 failed (10%)', 'total 30 requests, 3 failed (10%)']
    """
    lines = [
        f"{report.requests} rps, {report.failures} failed ({report.failure_percent}%)",
        f"total {report.total_requests} requests, {report.total_failures} failed "
        f"({report.total_failure_percent}%)",
    ]
    if show_errors:
        lines.extend(f"ERROR: {category} -> {count}" for category, count in report.errors.items())
    return lines


class StatsReporter:
    """일정 주기로 통계 주기를 넘기고 결과를 기록합니다."""

    def __init__(
        self,
        stats: LoadStatistics,
        interval_seconds: float = Reporting.INTERVAL_SECONDS,
        show_errors: bool = False,
    ) -> None:
        """
        Args:
            stats: 집계 대상 통계
            interval_seconds: 보고 주기 (초)
            show_errors: 실패 유형별 개수 출력 여부
        """
        self.stats = stats
        self.interval_seconds = interval_seconds
        self.show_errors = show_errors
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """보고 스레드를 시작합니다."""
        if self._thread is not None:
            logger.warning("stats_reporter_already_running")
            return

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="ec2auth-reporter", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """보고 스레드를 멈춥니다."""
        if self._thread is None:
            return

        self._stop.set()
        self._thread.join(timeout)
        self._thread = None

    def report_once(self) -> WindowReport:
        """주기 1회를 넘기고 보고서를 기록합니다."""
        report = self.stats.roll_window()
        for line in format_report(report, self.show_errors):
            logger.info(line)
        return report

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.report_once()
