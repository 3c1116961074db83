"""
services/session_registry.py — 세션 ID → 세션 레코드 인메모리 레지스트리

프로세스 전역 싱글턴이 아니라 엔진에 주입되는 인스턴스.
레지스트리 딕셔너리와 세션 레코드는 각자 잠금을 가진다.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from data_engineer_cbt.models.exam_result import ExamResult
from data_engineer_cbt.models.session_state import ExamSession
from data_engineer_cbt.services.scheduler import TimerHandle


@dataclass
class SessionRecord:
    """세션 상태 + 엔진 내부 회계 정보 + 세션 소유 타이머."""

    session: ExamSession
    remaining: float                       # 남은 시간 (초, 소수 포함)
    last_tick: datetime                    # 남은 시간을 마지막으로 차감한 시각
    question_started_at: datetime          # 현재 문제 제시 시각 (재개 시 갱신)
    question_elapsed: float = 0.0          # 현재 문제에서 일시정지 전까지 누적된 시간
    result: Optional[ExamResult] = None
    countdown: Optional[TimerHandle] = None
    autosave: Optional[TimerHandle] = None
    completed_early: bool = False          # 조기 완료 후 자동 저장 유지 중
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    last_touched: Optional[datetime] = None

    def __post_init__(self):
        if self.last_touched is None:
            self.last_touched = self.last_tick

    @property
    def is_active(self) -> bool:
        return not self.session.is_completed and not self.session.is_paused

    def cancel_timers(self) -> None:
        self.cancel_countdown()
        self.cancel_autosave()

    def cancel_countdown(self) -> None:
        if self.countdown is not None:
            self.countdown.cancel()
            self.countdown = None

    def cancel_autosave(self) -> None:
        if self.autosave is not None:
            self.autosave.cancel()
            self.autosave = None


class SessionRegistry:

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, SessionRecord] = {}

    def add(self, record: SessionRecord) -> None:
        with self._lock:
            self._records[record.session.id] = record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.get(session_id)

    def remove(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.pop(session_id, None)

    def records(self) -> List[SessionRecord]:
        with self._lock:
            return list(self._records.values())

    def expired(self, now: datetime, ttl: float) -> List[str]:
        """완료 또는 일시정지 상태로 ttl초 넘게 접근되지 않은 세션 ID 목록."""
        with self._lock:
            return [
                sid for sid, rec in self._records.items()
                if (rec.session.is_completed or rec.session.is_paused)
                and (now - rec.last_touched).total_seconds() > ttl
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._records
