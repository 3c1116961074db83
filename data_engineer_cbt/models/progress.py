"""
models/progress.py

학습 이력/추세/우선순위 조회 결과 레코드.
조회마다 명시적인 타입을 반환한다 (느슨한 dict 사용 금지).
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from data_engineer_cbt.models.exam_result import ExamResult, TopicScore
from data_engineer_cbt.models.question_model import ExamTopic, ExamType
from data_engineer_cbt.util.clock import utcnow

TrendDirection = Literal["improving", "declining", "stable"]
PriorityTier = Literal["high", "medium", "low"]
Timeframe = Literal["week", "month", "quarter", "year", "all"]


class HistoricalPerformanceData(BaseModel):
    """학습자별 누적 시험 결과 + 파생 집계. 추가만 가능."""

    user_id: str
    exam_results: List[ExamResult] = Field(default_factory=list)
    total_exams_taken: int = 0
    average_score: int = 0
    best_score: int = 0
    worst_score: int = 100
    total_time_spent: int = 0
    average_time_per_exam: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)


class TopicProgressData(BaseModel):
    """이력에서 매번 다시 계산되는 영역별 진척도. 별도 저장하지 않는다."""

    topic: ExamTopic
    exam_count: int
    scores: List[float]
    dates: List[datetime]
    average_score: int
    best_score: float
    latest_score: float
    trend: TrendDirection
    improvement_rate: float
    time_spent_total: int
    average_time_per_question: int


class TrendPoint(BaseModel):
    date: datetime
    score: int
    exam_type: ExamType
    topic: Optional[ExamTopic] = None
    topic_breakdown: Optional[List[TopicScore]] = None


class WeakAreaEntry(BaseModel):
    topic: ExamTopic
    average_score: int
    exam_count: int
    latest_score: float
    improvement_needed: int = Field(..., description="기준 점수까지 필요한 점수")


class PrioritizationEntry(BaseModel):
    topic: ExamTopic
    priority: int = Field(..., ge=1, le=5)
    reason_for_priority: str
    sessions_without_improvement: int
    last_improvement_date: Optional[datetime] = None
    recommended_action: str


class AssessmentConfig(BaseModel):
    total_questions: int
    topic_distribution: Dict[str, int]
    include_all_difficulties: bool = True
    balance_by_subtopic: bool = True


class QuestionAllocation(BaseModel):
    topic: ExamTopic
    question_count: int = Field(..., ge=0)
    priority: PriorityTier
    average_score: float = 0


class PerformanceAnalysis(BaseModel):
    weak_areas: List[ExamTopic] = Field(default_factory=list)
    strong_areas: List[ExamTopic] = Field(default_factory=list)
    topic_scores: Dict[str, float] = Field(default_factory=dict)
    has_exam_history: bool = False
    recommended_allocation: List[QuestionAllocation] = Field(default_factory=list)


class StudyRecommendation(BaseModel):
    topic: ExamTopic
    priority: PriorityTier
    recommended_questions: int
    focus_areas: List[str] = Field(default_factory=list)


class PerformanceAnalytics(BaseModel):
    user_id: str
    weak_areas: List[ExamTopic]
    strong_areas: List[ExamTopic]
    overall_progress: int
    topic_trends: List[TopicProgressData]
    recommended_study_plan: List[StudyRecommendation]
