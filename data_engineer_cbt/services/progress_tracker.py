"""
services/progress_tracker.py

학습자별 시험 결과 누적 및 진척도 조회.

결과 저장 시마다 전체 이력으로 집계를 다시 계산한다 (O(n)).
시험 1회 완료당 한 번이므로 비용은 문제가 되지 않는다.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Mapping, Optional

from config import DEFAULT_TOTAL_QUESTIONS, WEAK_AREA_THRESHOLD
from data_engineer_cbt.models.exam_result import ExamResult
from data_engineer_cbt.models.progress import (
    AssessmentConfig,
    HistoricalPerformanceData,
    PerformanceAnalytics,
    PrioritizationEntry,
    StudyRecommendation,
    Timeframe,
    TopicProgressData,
    TrendPoint,
    WeakAreaEntry,
)
from data_engineer_cbt.models.question_model import ALL_TOPICS
from data_engineer_cbt.ports.result_store import ResultStore
from data_engineer_cbt.services.adaptive_allocator import AdaptiveAllocator
from data_engineer_cbt.services.trend_analyzer import (
    analyze_topic_progress,
    count_sessions_without_improvement,
    filter_results,
    find_last_improvement_date,
    sort_by_end_time,
)
from data_engineer_cbt.util.clock import utcnow

logger = logging.getLogger(__name__)

TIMEFRAME_DAYS: Dict[str, int] = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}

# 종합 평가 기본 출제 비율 (합계 1.0)
DEFAULT_ASSESSMENT_WEIGHTS: Dict[str, float] = {
    "Databricks Lakehouse Platform": 0.20,
    "ELT with Spark SQL and Python": 0.25,
    "Incremental Data Processing": 0.20,
    "Production Pipelines": 0.20,
    "Data Governance": 0.15,
}

STRONG_PERFORMANCE = 80


class ProgressTracker:
    """
    Args:
        result_store: 결과 영속화 포트 (사용자별 추가 전용 로그).
        allocator:    학습 추천 계산에 사용하는 출제기.
        clock:        기간 필터 기준 시각 함수.
    """

    def __init__(
        self,
        result_store: ResultStore,
        allocator: AdaptiveAllocator,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.result_store = result_store
        self.allocator = allocator
        self.clock = clock
        self._lock = threading.Lock()
        self._history: Dict[str, HistoricalPerformanceData] = {}

    # ── 저장/집계 ────────────────────────────────────────────────────────────

    def store_result(self, result: ExamResult) -> HistoricalPerformanceData:
        """결과를 저장하고 해당 사용자의 집계를 다시 계산한다."""
        self.result_store.store(result)
        history = self._rebuild(result.user_id)
        logger.info(
            f"이력 갱신: user={result.user_id} exams={history.total_exams_taken} "
            f"avg={history.average_score}"
        )
        return history

    def _rebuild(self, user_id: str) -> HistoricalPerformanceData:
        results = sort_by_end_time(self.result_store.query_by_user(user_id))
        now = self.clock()
        with self._lock:
            previous = self._history.get(user_id)
            scores = [r.overall_score for r in results]
            total_time = sum(r.time_spent for r in results)
            history = HistoricalPerformanceData(
                user_id=user_id,
                exam_results=results,
                total_exams_taken=len(results),
                average_score=round(sum(scores) / len(scores)) if scores else 0,
                best_score=max(scores) if scores else 0,
                worst_score=min(scores) if scores else 100,
                total_time_spent=total_time,
                average_time_per_exam=round(total_time / len(results)) if results else 0,
                created_at=previous.created_at if previous else now,
                last_updated=now,
            )
            self._history[user_id] = history
        return history

    def get_historical_data(self, user_id: str) -> Optional[HistoricalPerformanceData]:
        """사용자 누적 이력. 저장된 결과가 없으면 None."""
        with self._lock:
            cached = self._history.get(user_id)
        if cached is not None:
            return cached
        if not self.result_store.query_by_user(user_id):
            return None
        return self._rebuild(user_id)

    def get_exam_history(self, user_id: str) -> List[ExamResult]:
        """종료 시각 순 시험 결과 (이력이 없으면 빈 리스트)."""
        history = self.get_historical_data(user_id)
        return list(history.exam_results) if history else []

    # ── 추세/취약 영역 ───────────────────────────────────────────────────────

    def get_topic_progress(self, user_id: str) -> List[TopicProgressData]:
        return analyze_topic_progress(self.get_exam_history(user_id))

    def get_performance_trends(
        self,
        user_id: str,
        timeframe: Optional[Timeframe] = None,
        topic: Optional[str] = None,
        exam_type: Optional[str] = None,
    ) -> List[TrendPoint]:
        """
        시간순 점수 추이.

        Args:
            timeframe: week/month/quarter/year (7/30/90/365일), all 또는 None이면 전체.
            topic:     지정하면 해당 영역 점수 (영역이 없는 시험은 제외).
            exam_type: 시험 종류 필터.
        """
        since = None
        if timeframe and timeframe != "all":
            since = self.clock() - timedelta(days=TIMEFRAME_DAYS[timeframe])

        results = filter_results(self.get_exam_history(user_id), since, topic, exam_type)
        if topic:
            return [
                TrendPoint(
                    date=r.end_time,
                    score=r.topic_score(topic).percentage,
                    exam_type=r.exam_type,
                    topic=topic,
                )
                for r in results
            ]
        return [
            TrendPoint(
                date=r.end_time,
                score=r.overall_score,
                exam_type=r.exam_type,
                topic_breakdown=list(r.topic_breakdown),
            )
            for r in results
        ]

    def identify_weak_areas(
        self,
        user_id: str,
        threshold: float = WEAK_AREA_THRESHOLD,
    ) -> List[WeakAreaEntry]:
        """전체 이력 평균이 threshold 미만인 영역 (평균 오름차순)."""
        collected: Dict[str, List[int]] = {}
        for r in self.get_exam_history(user_id):
            for ts in r.topic_breakdown:
                collected.setdefault(ts.topic, []).append(ts.percentage)

        weak = []
        for topic in ALL_TOPICS:
            scores = collected.get(topic)
            if not scores:
                continue
            average = sum(scores) / len(scores)
            if average < threshold:
                weak.append(WeakAreaEntry(
                    topic=topic,
                    average_score=round(average),
                    exam_count=len(scores),
                    latest_score=scores[-1],
                    improvement_needed=round(threshold - average),
                ))
        return sorted(weak, key=lambda w: w.average_score)

    # ── 향상도 기반 우선순위 ─────────────────────────────────────────────────

    def build_prioritization(
        self,
        user_id: str,
        recent_session_count: int = 3,
        weak_threshold: float = WEAK_AREA_THRESHOLD,
    ) -> List[PrioritizationEntry]:
        """
        영역별 학습 우선순위 (1~5).

            취약 + 하락                     → 5
            취약 + 최근 2회 이상 향상 없음  → 4
            취약                            → 3
            비취약 + 하락                   → 3
            향상 중 / 강점(평균 80 이상)    → 1
            그 외                           → 1

        시험이 2회 미만이면 빈 리스트.
        우선순위 내림차순, 같으면 향상 없는 회차 수 내림차순.
        """
        history = self.get_exam_history(user_id)
        if len(history) < 2:
            return []

        entries = []
        for progress in analyze_topic_progress(history):
            recent = progress.scores[-recent_session_count:]
            # 반올림 전 평균으로 판정
            mean = sum(progress.scores) / len(progress.scores)
            stagnant = count_sessions_without_improvement(recent)

            if mean < weak_threshold:
                if progress.trend == "declining":
                    priority = 5
                    reason = "Weak area with declining performance"
                    action = "Immediate focused study required, starting from the fundamentals"
                elif stagnant >= 2:
                    priority = 4
                    reason = "Weak area with no recent improvement"
                    action = "Change study approach, focus on fundamentals"
                else:
                    priority = 3
                    reason = "Weak area requiring attention"
                    action = "Increase practice frequency"
            elif progress.trend == "declining":
                priority = 3
                reason = "Performance declining from good level"
                action = "Review recent mistakes and refresh knowledge"
            elif progress.trend == "improving":
                priority = 1
                reason = "Showing consistent improvement"
                action = "Maintain current study pace"
            elif mean >= STRONG_PERFORMANCE:
                priority = 1
                reason = "Strong performance area"
                action = "Periodic review to maintain level"
            else:
                priority = 1
                reason = "Stable performance"
                action = "Continue regular practice"

            entries.append(PrioritizationEntry(
                topic=progress.topic,
                priority=priority,
                reason_for_priority=reason,
                sessions_without_improvement=stagnant,
                last_improvement_date=find_last_improvement_date(progress.scores, progress.dates),
                recommended_action=action,
            ))

        return sorted(
            entries,
            key=lambda e: (e.priority, e.sessions_without_improvement),
            reverse=True,
        )

    # ── 종합 평가 구성 ───────────────────────────────────────────────────────

    def comprehensive_assessment_config(
        self,
        total_questions: int = DEFAULT_TOTAL_QUESTIONS,
        custom_distribution: Optional[Mapping[str, int]] = None,
    ) -> Optional[AssessmentConfig]:
        """
        종합 평가용 영역별 문항 수.

        custom_distribution이 주어지면 그대로 쓰되 합계가 total_questions와 다르거나
        알 수 없는 영역/음수가 있으면 None. 없으면 기본 비율(20/25/20/20/15)로 나누고
        반올림 오차는 앞 영역부터 1문제씩 보정한다.
        """
        if total_questions < 0:
            return None

        if custom_distribution is not None:
            unknown = [t for t in custom_distribution if t not in ALL_TOPICS]
            if unknown:
                logger.warning(f"종합 평가 배분 거부: 알 수 없는 영역 {unknown}")
                return None
            if any(n < 0 for n in custom_distribution.values()):
                logger.warning("종합 평가 배분 거부: 음수 문항 수")
                return None
            custom_total = sum(custom_distribution.values())
            if custom_total != total_questions:
                logger.warning(
                    f"종합 평가 배분 거부: 합계 {custom_total} != 전체 {total_questions}"
                )
                return None
            distribution = dict(custom_distribution)
        else:
            distribution = {
                topic: round(total_questions * weight)
                for topic, weight in DEFAULT_ASSESSMENT_WEIGHTS.items()
            }
            diff = total_questions - sum(distribution.values())
            topics = list(distribution)
            step = 1 if diff > 0 else -1
            for i in range(abs(diff)):
                distribution[topics[i % len(topics)]] += step

        return AssessmentConfig(
            total_questions=total_questions,
            topic_distribution=distribution,
            include_all_difficulties=True,
            balance_by_subtopic=True,
        )

    # ── 종합 분석 ────────────────────────────────────────────────────────────

    def get_study_recommendations(self, user_id: str) -> List[StudyRecommendation]:
        history = self.get_exam_history(user_id)
        analysis = self.allocator.analyze_performance(history)
        return self.allocator.generate_recommendations(analysis, analyze_topic_progress(history))

    def comprehensive_analytics(self, user_id: str) -> Optional[PerformanceAnalytics]:
        """취약/강점 영역, 전체 평균, 영역별 추이, 학습 계획. 이력이 없으면 None."""
        data = self.get_historical_data(user_id)
        if data is None:
            return None

        history = list(data.exam_results)
        analysis = self.allocator.analyze_performance(history)
        trends = analyze_topic_progress(history)
        return PerformanceAnalytics(
            user_id=user_id,
            weak_areas=analysis.weak_areas,
            strong_areas=analysis.strong_areas,
            overall_progress=data.average_score,
            topic_trends=trends,
            recommended_study_plan=self.allocator.generate_recommendations(analysis, trends),
        )
