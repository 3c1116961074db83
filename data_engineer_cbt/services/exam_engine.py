"""
services/exam_engine.py

시험 세션 상태 머신.

    시작 → 진행 ⇄ 일시정지 → 완료(검토 모드) | 완료(종료)

세션마다 타이머 두 개를 소유한다.
    - 카운트다운: 남은 시간이 0이 되면 강제 완료 (1회성)
    - 자동 저장: auto_save_interval마다 스냅샷 (스스로 재예약)
상태가 바뀔 때마다 타이머를 취소/재예약하며, 남은 시간은 타이머 발화 횟수가 아닌
상태 전이 시점의 벽시계 시간으로 차감한다.

잘못된 호출(없는 세션, 잘못된 상태, 현재 문제가 아닌 답안)은 False/None을 반환하고
예외는 프로그래머 오류(빈 문제 리스트, 범위 밖 보기 인덱스)에만 사용한다.
"""

import logging
import math
import traceback
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from config import AUTO_SAVE_INTERVAL, EXAM_TIME_LIMIT, SESSION_TTL
from data_engineer_cbt.models.exam_result import UNANSWERED, ExamResult, QuestionResponse
from data_engineer_cbt.models.question_model import ExamType, Question
from data_engineer_cbt.models.session_state import ExamSession
from data_engineer_cbt.services.scheduler import Scheduler, ThreadingScheduler
from data_engineer_cbt.services.scoring_service import calculate_topic_breakdown
from data_engineer_cbt.services.session_registry import SessionRecord, SessionRegistry
from data_engineer_cbt.util.clock import seconds_between, utcnow

logger = logging.getLogger(__name__)


class EngineConfig(BaseModel):
    time_limit: int = Field(EXAM_TIME_LIMIT, gt=0, description="시험 제한 시간 (초)")
    auto_save_interval: float = Field(AUTO_SAVE_INTERVAL, gt=0, description="자동 저장 주기 (초)")
    session_ttl: float = Field(SESSION_TTL, ge=0, description="완료·일시정지 후 방치된 세션 보관 시간 (초)")


def build_exam_result(session: ExamSession, end_time: datetime) -> ExamResult:
    """
    세션의 최종 ExamResult를 만든다.

    - 고정된 문제 리스트 순서대로 응답을 매칭하고, 없으면 미응답 sentinel로 채운다.
    - 종료 시각은 시작 시각보다 최소 1초 뒤로 보정한다.
    - 영역별 점수는 문제 리스트를 영역으로 묶어 집계한다.
    """
    end_time = max(end_time, session.start_time + timedelta(seconds=1))

    by_id = {r.question_id: r for r in session.responses}
    responses = [
        by_id.get(q.id) or QuestionResponse(
            question_id=q.id,
            selected_answer=UNANSWERED,
            is_correct=False,
            time_spent=0,
            answered_at=end_time,
        )
        for q in session.questions
    ]

    return ExamResult(
        user_id=session.user_id,
        exam_type=session.exam_type,
        start_time=session.start_time,
        end_time=end_time,
        total_questions=len(session.questions),
        correct_answers=sum(1 for r in responses if r.is_correct),
        topic_breakdown=calculate_topic_breakdown(session.questions, responses),
        time_spent=int(seconds_between(session.start_time, end_time)),
        questions=responses,
    )


class ExamEngine:
    """
    Args:
        registry:      세션 레지스트리 (기본: 새 인스턴스).
        scheduler:     타이머 스케줄러 (기본: ThreadingScheduler).
        config:        제한 시간/자동 저장 주기 설정.
        clock:         현재 시각 함수 (timezone-aware UTC).
        on_complete:   결과가 만들어질 때 한 번 호출 (예: ProgressTracker.store_result).
        snapshot_sink: 자동 저장 시 세션 사본을 받는 함수. 없으면 DEBUG 로그만 남긴다.
    """

    def __init__(
        self,
        registry: Optional[SessionRegistry] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utcnow,
        on_complete: Optional[Callable[[ExamResult], None]] = None,
        snapshot_sink: Optional[Callable[[ExamSession], None]] = None,
    ):
        self.registry = registry or SessionRegistry()
        self.scheduler = scheduler or ThreadingScheduler()
        self.config = config or EngineConfig()
        self.clock = clock
        self.on_complete = on_complete
        self.snapshot_sink = snapshot_sink

    # ── 세션 시작/조회 ───────────────────────────────────────────────────────

    def start_session(
        self,
        user_id: str,
        exam_type: ExamType,
        questions: Sequence[Question],
    ) -> ExamSession:
        """
        새 세션을 만들고 카운트다운/자동 저장을 시작한다.

        Raises:
            ValueError: 문제 리스트가 비어 있을 때.
        """
        if not questions:
            raise ValueError("문제 리스트가 비어 있어 세션을 시작할 수 없습니다.")

        now = self.clock()
        session = ExamSession(
            user_id=user_id,
            exam_type=exam_type,
            questions=list(questions),
            start_time=now,
            time_remaining=self.config.time_limit,
        )
        record = SessionRecord(
            session=session,
            remaining=float(self.config.time_limit),
            last_tick=now,
            question_started_at=now,
        )
        self.registry.add(record)
        with record.lock:
            self._schedule_countdown(record)
            self._schedule_autosave(record)

        logger.info(
            f"세션 시작: session={session.id} user={user_id} "
            f"type={exam_type} questions={len(session.questions)}"
        )
        return session.model_copy(deep=True)

    def get_session(self, session_id: str) -> Optional[ExamSession]:
        """남은 시간을 갱신한 세션 사본. 없으면 None."""
        record = self.registry.get(session_id)
        if record is None:
            return None
        with record.lock:
            self._refresh(record)
            return record.session.model_copy(deep=True)

    def get_time_remaining(self, session_id: str) -> Optional[int]:
        record = self.registry.get(session_id)
        if record is None:
            return None
        with record.lock:
            self._refresh(record)
            return record.session.time_remaining

    def is_in_review_mode(self, session_id: str) -> bool:
        """완료되었지만 남은 시간이 있는 상태인지."""
        record = self.registry.get(session_id)
        if record is None:
            return False
        with record.lock:
            return record.session.is_completed and record.remaining > 0

    def get_user_active_sessions(self, user_id: str) -> List[ExamSession]:
        """결과를 아직 회수하지 않은 사용자의 세션 사본 (검토 모드 포함)."""
        sessions = []
        for record in self.registry.records():
            if record.session.user_id != user_id:
                continue
            with record.lock:
                self._refresh(record)
                sessions.append(record.session.model_copy(deep=True))
        return sessions

    # ── 답안 제출/이동 ───────────────────────────────────────────────────────

    def submit_answer(self, session_id: str, question_id: str, selected_answer: int) -> bool:
        """
        현재 문제에 대한 답안을 제출하고 다음 문제로 이동한다.

        Returns:
            제출 성공 여부. 없는 세션, 완료/일시정지 상태, 현재 문제가 아닌 경우 False.

        Raises:
            ValueError: selected_answer가 보기 범위를 벗어날 때.
        """
        record = self.registry.get(session_id)
        if record is None:
            logger.warning(f"답안 거부: 존재하지 않는 세션 {session_id}")
            return False

        with record.lock:
            session = record.session
            if not record.is_active:
                logger.warning(f"답안 거부: 진행 중이 아닌 세션 {session_id}")
                return False

            now = self.clock()
            if self._update_time(record, now):
                self._finalize(record, now)
                return False

            current = session.current_question
            if current is None or current.id != question_id:
                logger.warning(f"답안 거부: 현재 문제가 아님 session={session_id} question={question_id}")
                return False
            if not 0 <= selected_answer < len(current.options):
                raise ValueError(
                    f"보기 인덱스 범위 초과: {selected_answer} (보기 {len(current.options)}개)"
                )

            elapsed = record.question_elapsed + seconds_between(record.question_started_at, now)
            session.responses.append(QuestionResponse(
                question_id=question_id,
                selected_answer=selected_answer,
                is_correct=selected_answer == current.correct_answer,
                time_spent=max(int(elapsed), 0),
                answered_at=now,
            ))
            session.current_question_index += 1
            record.question_started_at = now
            record.question_elapsed = 0.0
            record.last_touched = now

            if session.current_question_index >= len(session.questions):
                self._finalize(record, now)
            return True

    def navigate_to_question(self, session_id: str, index: int) -> bool:
        """완료된 세션(검토 모드)에서만 임의 문제로 이동할 수 있다."""
        record = self.registry.get(session_id)
        if record is None:
            return False
        with record.lock:
            session = record.session
            if not session.is_completed:
                return False
            if not 0 <= index < len(session.questions):
                return False
            session.current_question_index = index
            record.last_touched = self.clock()
            return True

    # ── 일시정지/재개 ────────────────────────────────────────────────────────

    def pause(self, session_id: str) -> bool:
        record = self.registry.get(session_id)
        if record is None:
            return False
        with record.lock:
            if not record.is_active:
                return False
            now = self.clock()
            if self._update_time(record, now):
                self._finalize(record, now)
                return False

            record.question_elapsed += seconds_between(record.question_started_at, now)
            record.session.is_paused = True
            record.cancel_timers()
            record.last_touched = now
            logger.info(f"세션 일시정지: session={session_id} remaining={record.session.time_remaining}s")
            return True

    def resume(self, session_id: str) -> bool:
        record = self.registry.get(session_id)
        if record is None:
            return False
        with record.lock:
            session = record.session
            if session.is_completed or not session.is_paused:
                return False
            now = self.clock()
            session.is_paused = False
            record.last_tick = now
            record.question_started_at = now
            record.last_touched = now
            self._schedule_countdown(record)
            self._schedule_autosave(record)
            logger.info(f"세션 재개: session={session_id} remaining={session.time_remaining}s")
            return True

    # ── 완료 ─────────────────────────────────────────────────────────────────

    def complete_early(self, session_id: str) -> Optional[ExamResult]:
        """
        조기 완료. 카운트다운은 멈추고 자동 저장은 유지해 검토 모드로 남는다.
        갱신 시점에 이미 시간이 다 되었으면 시간 만료 결과를 돌려준다.
        """
        record = self.registry.get(session_id)
        if record is None:
            return None
        with record.lock:
            if not record.is_active:
                return None
            now = self.clock()
            if self._update_time(record, now):
                return self._finalize(record, now)
            return self._finalize(record, now, keep_autosave=True)

    def force_complete(self, session_id: str) -> Optional[ExamResult]:
        """
        강제 완료. 두 타이머를 모두 취소하고 미응답 문제는 sentinel로 채운다.

        - 진행/일시정지 세션: 결과 생성
        - 검토 모드 세션: 자동 저장만 멈추고 기존 결과 반환
        - 이미 종료된 세션: None
        """
        record = self.registry.get(session_id)
        if record is None:
            return None
        with record.lock:
            now = self.clock()
            if not record.session.is_completed:
                self._update_time(record, now)
                return self._finalize(record, now)
            if record.completed_early and record.autosave is not None:
                record.cancel_autosave()
                record.completed_early = False
                record.last_touched = now
                logger.info(f"검토 모드 종료: session={session_id}")
                return record.result
            return None

    def retrieve_result(self, session_id: str) -> Optional[ExamResult]:
        """최종 결과를 넘겨주고 세션을 레지스트리에서 제거한다. 미완료 세션은 None."""
        record = self.registry.get(session_id)
        if record is None:
            return None
        with record.lock:
            if not record.session.is_completed:
                return None
            record.cancel_timers()
            self.registry.remove(session_id)
            logger.info(f"결과 회수: session={session_id} result={record.result.id}")
            return record.result

    def end_session(self, session_id: str) -> bool:
        """타이머를 취소하고 세션을 제거한다. 미완료 세션은 결과 없이 폐기된다."""
        record = self.registry.remove(session_id)
        if record is None:
            return False
        with record.lock:
            record.cancel_timers()
        logger.info(f"세션 종료: session={session_id}")
        return True

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """완료 또는 일시정지 후 session_ttl 넘게 방치된 세션을 정리. 제거된 수 반환."""
        expired = self.registry.expired(now or self.clock(), self.config.session_ttl)
        removed = sum(1 for sid in expired if self.end_session(sid))
        if removed:
            logger.info(f"만료 세션 {removed}개 정리")
        return removed

    # ── 내부: 시간 회계/타이머 ───────────────────────────────────────────────

    def _update_time(self, record: SessionRecord, now: datetime) -> bool:
        """진행 중이면 지난 시간만큼 차감. 시간이 다 되었으면 True."""
        if not record.is_active:
            return False
        elapsed = max(seconds_between(record.last_tick, now), 0)
        record.remaining = max(record.remaining - elapsed, 0.0)
        record.last_tick = now
        record.session.time_remaining = math.ceil(record.remaining)
        return record.remaining <= 0

    def _refresh(self, record: SessionRecord) -> None:
        now = self.clock()
        if self._update_time(record, now):
            logger.info(f"시간 만료: session={record.session.id}")
            self._finalize(record, now)
        record.last_touched = now

    def _schedule_countdown(self, record: SessionRecord) -> None:
        record.cancel_countdown()
        sid = record.session.id
        record.countdown = self.scheduler.call_later(record.remaining, lambda: self._on_countdown(sid))

    def _schedule_autosave(self, record: SessionRecord) -> None:
        record.cancel_autosave()
        sid = record.session.id
        record.autosave = self.scheduler.call_later(
            self.config.auto_save_interval, lambda: self._on_autosave(sid)
        )

    def _on_countdown(self, session_id: str) -> None:
        record = self.registry.get(session_id)
        if record is None:
            return
        with record.lock:
            record.countdown = None
            if not record.is_active:
                return
            now = self.clock()
            if self._update_time(record, now):
                logger.info(f"시간 만료: session={session_id}")
                self._finalize(record, now)
            else:
                # 스케줄러가 일찍 깨운 경우 남은 시간만큼 다시 예약
                self._schedule_countdown(record)

    def _on_autosave(self, session_id: str) -> None:
        record = self.registry.get(session_id)
        if record is None:
            return
        with record.lock:
            record.autosave = None
            session = record.session
            if session.is_paused or (session.is_completed and not record.completed_early):
                return
            now = self.clock()
            if self._update_time(record, now):
                logger.info(f"시간 만료: session={session_id}")
                self._finalize(record, now)
                return

            if self.snapshot_sink is not None:
                try:
                    self.snapshot_sink(session.model_copy(deep=True))
                except Exception:
                    logger.error(f"자동 저장 실패: session={session_id}\n{traceback.format_exc()}")
            logger.debug(
                f"자동 저장: session={session_id} index={session.current_question_index} "
                f"remaining={session.time_remaining}s"
            )
            self._schedule_autosave(record)

    def _finalize(
        self,
        record: SessionRecord,
        now: datetime,
        keep_autosave: bool = False,
    ) -> ExamResult:
        """세션을 완료 처리하고 결과를 한 번만 만든다."""
        session = record.session
        if record.result is not None:
            return record.result

        session.is_completed = True
        session.is_paused = False
        record.completed_early = keep_autosave
        record.last_touched = now
        record.cancel_countdown()
        if not keep_autosave:
            record.cancel_autosave()

        result = build_exam_result(session, now)
        record.result = result
        logger.info(
            f"세션 완료: session={session.id} user={session.user_id} "
            f"score={result.overall_score} answered={session.answered_count}/{result.total_questions} "
            f"early={keep_autosave}"
        )
        if self.on_complete is not None:
            self.on_complete(result)
        return result
