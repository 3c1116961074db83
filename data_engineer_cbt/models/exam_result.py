"""
models/exam_result.py

시험 결과 모델 (응답, 영역별 점수, 최종 결과).
ExamResult는 세션 완료 시 한 번만 생성되며 이후 변경 불가.
"""

from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from data_engineer_cbt.models.question_model import ExamTopic, ExamType
from data_engineer_cbt.models.validation import (
    ValidationResult,
    check,
    check_non_empty_string,
    check_non_negative_int,
    check_percentage,
)
from data_engineer_cbt.util.clock import utcnow

UNANSWERED = -1  # 미응답 sentinel


class QuestionResponse(BaseModel):
    question_id: str = Field(..., description="문제 식별자")
    selected_answer: int = Field(..., description=f"선택한 보기 인덱스 ({UNANSWERED} = 미응답)")
    is_correct: bool = Field(..., description="정답 여부 (정답 인덱스와 비교해 산출)")
    time_spent: int = Field(0, description="문제 풀이 소요 시간 (초)")
    answered_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}

    @property
    def is_answered(self) -> bool:
        return self.selected_answer != UNANSWERED


class TopicScore(BaseModel):
    """응답 집합에서 파생되는 영역별 점수. 직접 수정하지 않는다."""

    topic: ExamTopic
    total_questions: int = Field(..., ge=0)
    correct_answers: int = Field(..., ge=0)
    percentage: int = Field(..., description="정답률 (반올림 정수)")
    average_time: int = Field(0, description="문항당 평균 소요 시간 (초)")

    model_config = {"frozen": True}


class ExamResult(BaseModel):
    """
    완료된 시험 결과.

    불변식: len(questions) == total_questions, 미응답 문제는 sentinel 응답으로 채워진다.
    """

    id: str = Field(default_factory=lambda: f"exam_result_{uuid4().hex}")
    user_id: str
    exam_type: ExamType = "practice"
    start_time: datetime
    end_time: datetime
    total_questions: int
    correct_answers: int
    topic_breakdown: List[TopicScore] = Field(default_factory=list)
    time_spent: int = Field(0, description="총 소요 시간 (초)")
    questions: List[QuestionResponse] = Field(default_factory=list, description="문제별 응답 (문제 순서)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_integrity(self) -> "ExamResult":
        validate_exam_result(self).raise_if_invalid("ExamResult")
        return self

    @property
    def overall_score(self) -> int:
        if self.total_questions == 0:
            return 0
        return round(self.correct_answers / self.total_questions * 100)

    @property
    def average_time_per_question(self) -> int:
        if self.total_questions == 0:
            return 0
        return round(self.time_spent / self.total_questions)

    def weak_topics(self, threshold: float = 70) -> List[str]:
        return [t.topic for t in self.topic_breakdown if t.percentage < threshold]

    def strong_topics(self, threshold: float = 80) -> List[str]:
        return [t.topic for t in self.topic_breakdown if t.percentage >= threshold]

    def topic_score(self, topic: str) -> Optional[TopicScore]:
        return next((t for t in self.topic_breakdown if t.topic == topic), None)


def validate_exam_result(r: ExamResult) -> ValidationResult:
    """ExamResult 무결성 검증 (예외 없이 결과만 반환)."""
    results = [
        check_non_empty_string(r.user_id, "User ID"),
        check_non_empty_string(r.id, "Exam result ID"),
        check(r.end_time > r.start_time, "End time must be after start time"),
        check_non_negative_int(r.total_questions, "Total questions"),
        check(
            0 <= r.correct_answers <= r.total_questions,
            "Correct answers must be between 0 and total questions",
        ),
        check_non_negative_int(r.time_spent, "Time spent"),
        check(
            len(r.questions) == r.total_questions,
            "Questions array length must match total questions",
        ),
        check(
            sum(1 for q in r.questions if q.is_correct) == r.correct_answers,
            "Actual correct answers in questions array must match correctAnswers field",
        ),
    ]
    if r.topic_breakdown:
        results.append(check(
            sum(t.total_questions for t in r.topic_breakdown) == r.total_questions,
            "Topic breakdown total questions must match exam total questions",
        ))
        results.append(check(
            sum(t.correct_answers for t in r.topic_breakdown) == r.correct_answers,
            "Topic breakdown correct answers must match exam correct answers",
        ))
        results.extend(check_percentage(t.percentage, f"{t.topic} percentage") for t in r.topic_breakdown)
    return ValidationResult.combine(*results)
