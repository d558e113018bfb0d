"""EC2 인증 부하 하네스.

주요 구성 요소:
    - LoadHarness: 1회 실행 및 연속 부하 실행기
    - StatsReporter: 주기 통계 보고 스레드
    - LoadStatistics: 동시 증가 가능한 통계 집계
"""

from ec2auth.harness.reporter import StatsReporter, format_report
from ec2auth.harness.runner import LoadHarness, categorize_error
from ec2auth.harness.stats import LoadStatistics, WindowReport

__all__ = [
    "LoadHarness",
    "StatsReporter",
    "LoadStatistics",
    "WindowReport",
    "categorize_error",
    "format_report",
]
