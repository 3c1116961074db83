"""
models/feedback.py

채점 분석 결과 레코드 (문항별 피드백, 시간 분석, 학습 인사이트).
"""

from typing import List

from pydantic import BaseModel, Field

from data_engineer_cbt.models.exam_result import ExamResult, TopicScore
from data_engineer_cbt.models.question_model import ExamTopic


class QuestionFeedback(BaseModel):
    question_id: str
    question_text: str
    selected_answer: int
    correct_answer: int
    is_correct: bool
    explanation: str
    documentation_links: List[str] = Field(default_factory=list)
    time_spent: int
    topic: ExamTopic


class QuestionTiming(BaseModel):
    question_id: str
    time_spent: int


class TopicTiming(BaseModel):
    topic: ExamTopic
    total_time: int
    average_time: int
    question_count: int


class PacingAnalysis(BaseModel):
    is_well_paced: bool
    rushing_questions: List[str] = Field(default_factory=list)
    slow_questions: List[str] = Field(default_factory=list)
    time_deviation: float = Field(0.0, description="문항별 소요 시간의 표준편차 (초)")
    recommendations: List[str] = Field(default_factory=list)


class TimingAnalysis(BaseModel):
    total_time_spent: int
    average_time_per_question: int
    fastest_question: QuestionTiming
    slowest_question: QuestionTiming
    time_by_topic: List[TopicTiming]
    pacing_analysis: PacingAnalysis


class PerformanceInsights(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ComprehensiveFeedback(BaseModel):
    exam_result: ExamResult
    overall_score: int
    topic_breakdown: List[TopicScore]
    question_feedback: List[QuestionFeedback]
    timing_analysis: TimingAnalysis
    performance_insights: PerformanceInsights


class ImmediateFeedback(BaseModel):
    score: int
    passed: bool
    correct_answers: int
    total_questions: int
    time_spent: str = Field(..., description='"1h 5m" 또는 "42m" 형식')
    top_performing_topic: str
    weakest_topic: str
