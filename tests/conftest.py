import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import pytest

from data_engineer_cbt.models.exam_result import ExamResult, QuestionResponse, TopicScore
from data_engineer_cbt.models.question_model import Question
from data_engineer_cbt.services.exam_engine import EngineConfig, ExamEngine
from data_engineer_cbt.services.scheduler import Scheduler, TimerHandle
from data_engineer_cbt.storage.memory import InMemoryQuestionStore, InMemoryResultStore

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class _ManualHandle(TimerHandle):
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """시계를 직접 움직이며 예약된 콜백을 시각 순서대로 실행한다."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, callback):
        handle = _ManualHandle()
        due = self.clock.now + timedelta(seconds=delay)
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def advance(self, seconds: float) -> None:
        target = self.clock.now + timedelta(seconds=seconds)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            handle.cancelled = True
            self.clock.now = max(self.clock.now, due)
            callback()
        self.clock.now = target


def make_question(
    topic: str = "Data Governance",
    qid: Optional[str] = None,
    correct: int = 0,
    difficulty: str = "medium",
    n_options: int = 4,
) -> Question:
    data = dict(
        topic=topic,
        subtopic="General",
        difficulty=difficulty,
        question_text="Which of the following statements is correct?",
        options=[f"Option {i}" for i in range(n_options)],
        correct_answer=correct,
        explanation="The correct option matches the official documentation.",
    )
    if qid:
        data["id"] = qid
    return Question(**data)


def make_result(
    topic_scores: Dict[str, int],
    end_time: datetime,
    user_id: str = "learner-1",
    per_topic: int = 100,
    seconds_per_question: int = 60,
    exam_type: str = "practice",
) -> ExamResult:
    """영역별 정답률(%)로 무결성 규칙을 만족하는 ExamResult를 만든다."""
    responses = []
    breakdown = []
    for topic, pct in topic_scores.items():
        correct = round(pct * per_topic / 100)
        for i in range(per_topic):
            responses.append(QuestionResponse(
                question_id=f"{topic}-{end_time.isoformat()}-{i}",
                selected_answer=0 if i < correct else 1,
                is_correct=i < correct,
                time_spent=seconds_per_question,
                answered_at=end_time,
            ))
        breakdown.append(TopicScore(
            topic=topic,
            total_questions=per_topic,
            correct_answers=correct,
            percentage=round(correct / per_topic * 100),
            average_time=seconds_per_question,
        ))
    total_time = len(responses) * seconds_per_question
    return ExamResult(
        user_id=user_id,
        exam_type=exam_type,
        start_time=end_time - timedelta(seconds=total_time),
        end_time=end_time,
        total_questions=len(responses),
        correct_answers=sum(1 for r in responses if r.is_correct),
        topic_breakdown=breakdown,
        time_spent=total_time,
        questions=responses,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def completed():
    return []


@pytest.fixture
def engine(clock, scheduler, completed):
    return ExamEngine(
        scheduler=scheduler,
        config=EngineConfig(time_limit=5400, auto_save_interval=30, session_ttl=3600),
        clock=clock,
        on_complete=completed.append,
    )


@pytest.fixture
def question_store():
    store = InMemoryQuestionStore()
    for topic in (
        "Databricks Lakehouse Platform",
        "ELT with Spark SQL and Python",
        "Incremental Data Processing",
        "Production Pipelines",
        "Data Governance",
    ):
        for i, difficulty in enumerate(["easy", "medium", "hard"] * 14):
            store.add(make_question(topic, qid=f"{topic}-{i}", difficulty=difficulty))
    return store


@pytest.fixture
def result_store():
    return InMemoryResultStore()
