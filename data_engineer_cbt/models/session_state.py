"""
models/session_state.py

진행 중인 시험 세션의 상태 모델.
Pydantic BaseModel 기반 — 직렬화/역직렬화 및 타입 안전성 확보.
변경은 세션 엔진(services/exam_engine.py)을 통해서만 이루어진다.
"""

from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from data_engineer_cbt.models.exam_result import QuestionResponse
from data_engineer_cbt.models.question_model import ExamType, Question
from data_engineer_cbt.util.clock import utcnow


class ExamSession(BaseModel):
    """
    사용자의 시험 세션 전체 상태를 표현하는 모델.

    Attributes:
        questions:              세션 시작 시 고정되는 문제 리스트.
        current_question_index: 현재 풀고 있는 문제의 인덱스 (0-based).
        responses:              제출된 응답 (제출 순서 = 문제 순서).
        time_remaining:         남은 시간 (초). 일시정지 중에는 줄지 않는다.
        is_completed:           완료 여부. 조기 완료 시 검토 모드로 남을 수 있다.
        is_paused:              일시정지 여부.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str = Field(..., min_length=1)
    exam_type: ExamType = "practice"
    questions: List[Question] = Field(default_factory=list)
    current_question_index: int = Field(
        default=0,
        ge=0,
        description="현재 풀고 있는 문제 인덱스 (0-based)"
    )
    responses: List[QuestionResponse] = Field(default_factory=list)
    start_time: datetime = Field(default_factory=utcnow)
    time_remaining: int = Field(..., ge=0, description="남은 시간 (초)")
    is_completed: bool = Field(default=False, description="완료 여부")
    is_paused: bool = Field(default=False, description="일시정지 여부")

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def answered_count(self) -> int:
        return len(self.responses)
