"""
services/adaptive_allocator.py

학습 이력 기반 적응형 출제기.

1. 이력이 없으면 5개 영역에 균등 배분 (나머지는 앞 영역부터 1문제씩)
2. 이력이 있으면 최근 N회(기본 3회) 영역별 평균으로 취약/강점 영역 판정
3. 전체의 60%를 취약 영역에 균등 배분, 나머지는 비취약 영역에 균등 배분
   (모든 영역이 취약하면 전체를 취약 영역에 배분)
4. 영역별로 필요 수의 2배를 문제 은행에서 가져와 섞은 뒤 필요 수만큼 선택
5. 모든 영역을 합쳐 한 번 더 섞는다 (영역 순서 예측 불가)
"""

import logging
import random
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, model_validator

from config import (
    DEFAULT_TOTAL_QUESTIONS,
    RECENT_RESULTS_WINDOW,
    STRONG_AREA_THRESHOLD,
    WEAK_AREA_ALLOCATION_PERCENTAGE,
    WEAK_AREA_THRESHOLD,
)
from data_engineer_cbt.models.exam_result import ExamResult
from data_engineer_cbt.models.progress import (
    PerformanceAnalysis,
    QuestionAllocation,
    StudyRecommendation,
    TopicProgressData,
)
from data_engineer_cbt.models.question_model import ALL_TOPICS, Question
from data_engineer_cbt.ports.question_store import QuestionStore
from data_engineer_cbt.services.trend_analyzer import extract_topic_series

logger = logging.getLogger(__name__)

# 점수 70 미만 영역에 붙는 학습 포인트
TOPIC_FOCUS_AREAS: Dict[str, List[str]] = {
    "Production Pipelines": [
        "Delta Live Tables configuration and management",
        "Job scheduling and orchestration",
        "Error handling and monitoring",
    ],
    "Incremental Data Processing": [
        "Merge operations and UPSERT patterns",
        "Change Data Capture (CDC) implementation",
        "Streaming data processing",
    ],
    "ELT with Spark SQL and Python": [
        "Advanced SQL operations and optimization",
        "PySpark DataFrame operations",
    ],
    "Databricks Lakehouse Platform": [
        "Platform architecture and components",
        "Workspace and cluster management",
    ],
    "Data Governance": [
        "Unity Catalog and data governance",
        "Security and access control",
    ],
}
FOCUS_AREA_SCORE = 70

_PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}


class AllocationConfig(BaseModel):
    total_questions: int = Field(DEFAULT_TOTAL_QUESTIONS, ge=0, description="출제 문항 수")
    weak_area_threshold: float = Field(WEAK_AREA_THRESHOLD, description="이 점수 미만이면 취약 영역")
    strong_area_threshold: float = Field(STRONG_AREA_THRESHOLD, description="이 점수 이상이면 강점 영역")
    weak_area_allocation_percentage: float = Field(
        WEAK_AREA_ALLOCATION_PERCENTAGE, ge=0, le=100,
        description="취약 영역에 배정할 문항 비율 (%)"
    )
    recent_results_window: int = Field(RECENT_RESULTS_WINDOW, ge=1, description="평균 산출에 쓰는 최근 시험 수")
    reduce_allocation_window: int = Field(3, ge=1, description="배분 축소 판단에 쓰는 최근 점수 수")

    @model_validator(mode="after")
    def check_thresholds(self) -> "AllocationConfig":
        if self.weak_area_threshold > self.strong_area_threshold:
            raise ValueError("weak_area_threshold는 strong_area_threshold보다 클 수 없습니다.")
        return self


def even_split(total: int, topics: Sequence[str]) -> Dict[str, int]:
    """total을 topics에 균등 배분. 나머지는 앞에서부터 1개씩."""
    if not topics:
        return {}
    base, extra = divmod(total, len(topics))
    return {t: base + (1 if i < extra else 0) for i, t in enumerate(topics)}


class AdaptiveAllocator:
    """
    Args:
        question_store: 문제 은행 포트.
        config:         기본 배분 설정.
        rng:            셔플용 난수 생성기. 시드를 고정하면 결과가 결정적이다.
    """

    def __init__(
        self,
        question_store: QuestionStore,
        config: Optional[AllocationConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.question_store = question_store
        self.config = config or AllocationConfig()
        self._random = rng or random.Random()

    # ── 성적 분석 ────────────────────────────────────────────────────────────

    def recent_results(self, history: Sequence[ExamResult], count: int) -> List[ExamResult]:
        return sorted(history, key=lambda r: r.end_time, reverse=True)[:count]

    def average_topic_scores(self, results: Sequence[ExamResult]) -> Dict[str, float]:
        collected: Dict[str, List[int]] = {}
        for r in results:
            for ts in r.topic_breakdown:
                collected.setdefault(ts.topic, []).append(ts.percentage)
        return {
            topic: round(sum(collected[topic]) / len(collected[topic]), 2)
            for topic in ALL_TOPICS
            if topic in collected
        }

    def analyze_performance(
        self,
        history: Sequence[ExamResult],
        config: Optional[AllocationConfig] = None,
    ) -> PerformanceAnalysis:
        """최근 시험 기준 취약/강점 영역과 권장 배분을 계산한다."""
        cfg = config or self.config

        if not history:
            allocation = [
                QuestionAllocation(topic=t, question_count=n, priority="medium", average_score=0)
                for t, n in even_split(cfg.total_questions, ALL_TOPICS).items()
            ]
            return PerformanceAnalysis(has_exam_history=False, recommended_allocation=allocation)

        recent = self.recent_results(history, cfg.recent_results_window)
        topic_scores = self.average_topic_scores(recent)

        weak = [t for t, s in topic_scores.items() if s < cfg.weak_area_threshold]
        strong = [t for t, s in topic_scores.items() if s >= cfg.strong_area_threshold]

        return PerformanceAnalysis(
            weak_areas=weak,
            strong_areas=strong,
            topic_scores=topic_scores,
            has_exam_history=True,
            recommended_allocation=self._allocate(topic_scores, weak, strong, cfg),
        )

    def _allocate(
        self,
        topic_scores: Mapping[str, float],
        weak: Sequence[str],
        strong: Sequence[str],
        cfg: AllocationConfig,
    ) -> List[QuestionAllocation]:
        total = cfg.total_questions
        allocations: List[QuestionAllocation] = []

        others = [t for t in ALL_TOPICS if t not in weak]

        if weak:
            weak_budget = int(total * cfg.weak_area_allocation_percentage / 100)
            if not others:
                # 모든 영역이 취약하면 전체를 취약 영역에 배분
                weak_budget = total
            weakest_first = sorted(weak, key=lambda t: topic_scores.get(t, 0))
            for topic, count in even_split(weak_budget, weakest_first).items():
                allocations.append(QuestionAllocation(
                    topic=topic,
                    question_count=count,
                    priority="high",
                    average_score=topic_scores.get(topic, 0),
                ))
        else:
            # 취약 영역이 없으면 전체를 균등 배분
            weak_budget = 0

        for topic, count in even_split(total - weak_budget, others).items():
            allocations.append(QuestionAllocation(
                topic=topic,
                question_count=count,
                priority="low" if topic in strong else "medium",
                average_score=topic_scores.get(topic, 0),
            ))

        return sorted(allocations, key=lambda a: a.average_score)

    # ── 문제 선택 ────────────────────────────────────────────────────────────

    def _shuffled(self, items: Sequence[Question]) -> List[Question]:
        copied = list(items)
        self._random.shuffle(copied)
        return copied

    def _select_random(self, questions: Sequence[Question], count: int) -> List[Question]:
        if len(questions) <= count:
            return list(questions)
        return self._shuffled(questions)[:count]

    def _draw(self, topic: str, count: int, prefer_challenging: bool = False) -> List[Question]:
        candidates = self.question_store.find_by_topic(topic, count * 2)
        if prefer_challenging:
            challenging = [q for q in candidates if q.difficulty in ("medium", "hard")]
            if len(challenging) >= count:
                candidates = challenging
        picked = self._select_random(candidates, count)
        if len(picked) < count:
            logger.warning(f"문제 부족: {topic} 요청 {count}개 / 확보 {len(picked)}개")
        return picked

    def generate_question_set(
        self,
        history: Sequence[ExamResult],
        config: Optional[AllocationConfig] = None,
    ) -> List[Question]:
        """
        학습 이력에 맞춘 문제 세트를 만든다.

        Returns:
            최대 total_questions개의 Question 리스트 (영역 섞임).
            문제 은행 재고가 부족하면 가능한 만큼만 담는다.
        """
        analysis = self.analyze_performance(history, config)
        selected: List[Question] = []
        for allocation in analysis.recommended_allocation:
            if allocation.question_count <= 0:
                continue
            selected.extend(self._draw(
                allocation.topic,
                allocation.question_count,
                prefer_challenging=allocation.priority == "high",
            ))
        logger.info(
            f"적응형 문제 세트 생성: {len(selected)}문항 "
            f"(취약 영역 {len(analysis.weak_areas)}개, 이력 {len(history)}회)"
        )
        return self._shuffled(selected)

    def generate_distribution_question_set(self, distribution: Mapping[str, int]) -> List[Question]:
        """영역→문항 수 지정 배분으로 문제 세트를 만든다 (종합 평가용)."""
        selected: List[Question] = []
        for topic, count in distribution.items():
            if count > 0:
                selected.extend(self._draw(topic, count))
        return self._shuffled(selected)

    # ── 배분 조정/학습 추천 ──────────────────────────────────────────────────

    def should_reduce_allocation(self, topic: str, history: Sequence[ExamResult]) -> bool:
        """해당 영역의 최근 N개 점수가 모두 강점 기준 이상이면 True."""
        scores = extract_topic_series(history, topic).scores
        recent = scores[-self.config.reduce_allocation_window:]
        if not recent:
            return False
        return all(s >= self.config.strong_area_threshold for s in recent)

    def generate_recommendations(
        self,
        analysis: PerformanceAnalysis,
        trends: Sequence[TopicProgressData],
    ) -> List[StudyRecommendation]:
        """
        영역별 학습 우선순위와 권장 문항 수.

        추세는 점수가 2개 이상인 영역만 반영한다.
        출제 배분 계산에는 사용하지 않는 안내용 정보.
        """
        trend_by_topic = {t.topic: t.trend for t in trends if t.exam_count >= 2}
        recommendations = []

        for topic in ALL_TOPICS:
            score = analysis.topic_scores.get(topic, 0)
            trend = trend_by_topic.get(topic)
            is_weak = topic in analysis.weak_areas

            priority, count, focus = "medium", 10, []
            if is_weak:
                priority, count = "high", 20
                if trend in ("declining", "stable"):
                    count = 25
                    focus.append("Requires immediate attention - no recent improvement")
            elif trend == "declining":
                priority, count = "medium", 15
                focus.append("Performance declining - needs review")

            if topic in analysis.strong_areas and trend == "improving":
                priority, count = "low", 5
                focus.append("Maintain current performance level")

            if score < FOCUS_AREA_SCORE:
                focus.extend(TOPIC_FOCUS_AREAS.get(topic, []))

            recommendations.append(StudyRecommendation(
                topic=topic,
                priority=priority,
                recommended_questions=count,
                focus_areas=focus,
            ))

        return sorted(recommendations, key=lambda r: _PRIORITY_ORDER[r.priority], reverse=True)
