"""EC2 인증 부하 하네스 모듈.

threads가 0이면 인증을 한 번만 수행하고, 양수이면 동시 실행 수를
threads로 제한한 채 인증을 끝없이 반복하며 통계를 보고합니다.
"""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TextIO

import httpx

from ec2auth.client import AuthClient
from ec2auth.constants import Reporting
from ec2auth.exceptions import EC2AuthError, HTTPTransportError
from ec2auth.harness.reporter import StatsReporter
from ec2auth.harness.stats import AtomicCounter, LoadStatistics, WindowReport
from ec2auth.logging import get_logger
from ec2auth.models import EC2Credentials

logger = get_logger(__name__)


def categorize_error(exc: BaseException) -> str:
    """실패를 유형 문자열로 분류합니다.

    예외 체인에 전송 계층 오류가 있으면 그 메시지를, 없으면 예외 타입 이름을 사용합니다.

    Example:
        >>> categorize_error(ValueError("boom"))
        'ValueError'
    """
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, (httpx.TransportError, HTTPTransportError)):
            return str(current) or type(current).__name__
        current = current.__cause__
    return type(exc).__name__


class LoadHarness:
    """EC2 인증 1회 실행 및 연속 부하 실행기.

    사용 예시:
        harness = LoadHarness(client, credentials, threads=10, show_errors=True)
        harness.run()
    """

    def __init__(
        self,
        client: AuthClient,
        credentials: EC2Credentials,
        threads: int = 0,
        show_errors: bool = False,
        debug: bool = False,
        report_interval: float = Reporting.INTERVAL_SECONDS,
    ):
        """
        Args:
            client: 모든 워커가 공유하는 인증 클라이언트
            credentials: EC2 자격 증명
            threads: 동시 실행 가능한 최대 인증 시도 수 (0이면 1회 실행)
            show_errors: 실패 유형 집계 여부
            debug: 성공 시 사용자/프로젝트 기록 여부
            report_interval: 통계 보고 주기 (초)
        """
        if threads < 0:
            raise ValueError("threads must not be negative")

        self.client = client
        self.credentials = credentials
        self.threads = threads
        self.show_errors = show_errors
        self.debug = debug
        self.stats = LoadStatistics()
        self.reporter = StatsReporter(self.stats, report_interval, show_errors)

        # 동시 실행 수 추적 (테스트 및 모니터링용)
        self.in_flight = AtomicCounter()
        self.peak_in_flight = 0
        self._peak_lock = threading.Lock()
        self._stop = threading.Event()

    def run_single_shot(self, stdout: TextIO | None = None) -> int:
        """인증을 한 번 수행하고 종료 코드를 반환합니다.

        성공하면 토큰 ID를 표준 출력에 쓰고 0을, 실패하면 오류를 기록하고 1을 반환합니다.
        """
        try:
            result = self.client.authenticate(self.credentials)
        except EC2AuthError as e:
            logger.error(str(e), error_type=type(e).__name__)
            return 1

        if self.debug:
            logger.info(f"User: {result.username}")
            logger.info(f"Project: {result.project_name}")

        print(result.token_id, file=stdout or sys.stdout)
        return 0

    def run(self, max_attempts: int | None = None) -> WindowReport:
        """연속 부하를 실행합니다.

        슬롯을 하나 얻을 때마다 새 시도를 제출하며, 각 시도는 끝날 때 슬롯을 반납합니다.
        슬롯이 없으면 디스패치 루프가 대기하므로 진행 중인 시도는 항상 threads 이하입니다.

        Args:
            max_attempts: 제출할 최대 시도 수 (None이면 stop() 전까지 무한 실행)

        Returns:
            마지막 주기의 보고서
        """
        if self.threads == 0:
            raise ValueError("continuous mode requires threads > 0")

        limiter = threading.BoundedSemaphore(self.threads)
        self._stop.clear()
        self.reporter.start()
        logger.info("load_started", threads=self.threads)

        dispatched = 0
        try:
            with ThreadPoolExecutor(
                max_workers=self.threads, thread_name_prefix="ec2auth-worker"
            ) as executor:
                while not self._stop.is_set():
                    if max_attempts is not None and dispatched >= max_attempts:
                        break
                    limiter.acquire()
                    executor.submit(self._attempt, limiter)
                    dispatched += 1
        finally:
            self.reporter.stop()

        return self.reporter.report_once()

    def stop(self) -> None:
        """디스패치 루프를 멈춥니다. 진행 중인 시도는 끝까지 실행됩니다."""
        self._stop.set()

    def _attempt(self, limiter: threading.BoundedSemaphore) -> None:
        current = self.in_flight.add()
        with self._peak_lock:
            self.peak_in_flight = max(self.peak_in_flight, current)

        try:
            result = self.client.authenticate(self.credentials)
        except Exception as e:
            self.stats.record_failure(categorize_error(e) if self.show_errors else None)
        else:
            self.stats.record_success()
            if self.debug:
                logger.info(f"User: {result.username}")
                logger.info(f"Project: {result.project_name}")
        finally:
            self.in_flight.add(-1)
            limiter.release()
