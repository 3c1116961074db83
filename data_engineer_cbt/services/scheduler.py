"""
services/scheduler.py

세션 타이머(카운트다운, 자동 저장)를 예약하는 스케줄러.
엔진은 이 인터페이스만 사용하므로 테스트에서는 수동 스케줄러로 교체한다.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable


class TimerHandle(ABC):

    @abstractmethod
    def cancel(self) -> None:
        """예약 취소. 이미 실행되었거나 취소된 경우 아무 일도 하지 않는다."""
        pass


class Scheduler(ABC):

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """delay초 후 callback을 한 번 실행하도록 예약."""
        pass


class _ThreadTimerHandle(TimerHandle):
    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler(Scheduler):
    """threading.Timer 기반 스케줄러. 프로세스 종료를 막지 않도록 daemon 스레드 사용."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(max(delay, 0), callback)
        timer.daemon = True
        timer.start()
        return _ThreadTimerHandle(timer)
