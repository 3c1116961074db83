"""
services/trend_analyzer.py

학습자 시험 이력에서 영역별 점수 추이를 계산한다.
순수 함수 모음 — 저장소 접근 없음. 입력은 한 학습자의 ExamResult 리스트.

추세 판정: 시험 순번(1..n)에 대한 점수의 최소제곱 기울기
    |기울기| < 1  → stable
    기울기 > 0    → improving
    그 외         → declining
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from data_engineer_cbt.models.exam_result import ExamResult
from data_engineer_cbt.models.progress import TopicProgressData, TrendDirection
from data_engineer_cbt.models.question_model import ALL_TOPICS

STABLE_SLOPE = 1.0  # 시험 1회당 1점 미만 변화는 정체로 본다


@dataclass
class TopicSeries:
    """한 영역의 시간순 점수 계열."""

    topic: str
    scores: List[float] = field(default_factory=list)
    dates: List[datetime] = field(default_factory=list)
    total_time: int = 0
    total_questions: int = 0


def sort_by_end_time(results: Sequence[ExamResult]) -> List[ExamResult]:
    return sorted(results, key=lambda r: r.end_time)


def filter_results(
    results: Sequence[ExamResult],
    since: Optional[datetime] = None,
    topic: Optional[str] = None,
    exam_type: Optional[str] = None,
) -> List[ExamResult]:
    """
    기간/영역/시험 종류로 이력을 거른다.

    Args:
        since:     이 시각 이후(포함) 종료된 시험만.
        topic:     영역별 점수에 이 영역이 포함된 시험만.
        exam_type: "practice" / "assessment".
    """
    filtered = []
    for r in results:
        if since is not None and r.end_time < since:
            continue
        if exam_type and r.exam_type != exam_type:
            continue
        if topic and r.topic_score(topic) is None:
            continue
        filtered.append(r)
    return filtered


def extract_topic_series(results: Sequence[ExamResult], topic: str) -> TopicSeries:
    """종료 시각 순으로 정렬한 뒤 해당 영역이 있는 시험의 점수만 모은다."""
    series = TopicSeries(topic=topic)
    for r in sort_by_end_time(results):
        ts = r.topic_score(topic)
        if ts is None:
            continue
        series.scores.append(ts.percentage)
        series.dates.append(r.end_time)
        series.total_time += ts.average_time * ts.total_questions
        series.total_questions += ts.total_questions
    return series


def regression_slope(scores: Sequence[float]) -> float:
    n = len(scores)
    if n < 2:
        return 0.0
    xs = range(1, n + 1)
    sum_x = sum(xs)
    sum_y = sum(scores)
    sum_xy = sum(x * y for x, y in zip(xs, scores))
    sum_xx = sum(x * x for x in xs)
    return (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)


def classify_trend(scores: Sequence[float]) -> TrendDirection:
    if len(scores) < 2:
        return "stable"
    slope = regression_slope(scores)
    if abs(slope) < STABLE_SLOPE:
        return "stable"
    return "improving" if slope > 0 else "declining"


def improvement_rate(scores: Sequence[float]) -> float:
    """
    시험 1회당 평균 향상률 (%).

    (마지막 - 처음) / 처음 * 100 / (n - 1), 소수점 둘째 자리 반올림.
    처음 점수가 작으면 값이 크게 튄다. 기존 지표와의 호환을 위해 공식은 유지한다.
    """
    if len(scores) < 2:
        return 0.0
    first, last = scores[0], scores[-1]
    if first == 0:
        return 0.0
    return round((last - first) / first * 100 / (len(scores) - 1), 2)


def count_sessions_without_improvement(scores: Sequence[float]) -> int:
    """연속으로 오르지 않은 회차 수. 점수가 오르면 0으로 초기화."""
    count = 0
    for prev, cur in zip(scores, scores[1:]):
        count = count + 1 if cur <= prev else 0
    return count


def find_last_improvement_date(
    scores: Sequence[float],
    dates: Sequence[datetime],
) -> Optional[datetime]:
    for i in range(len(scores) - 1, 0, -1):
        if scores[i] > scores[i - 1]:
            return dates[i]
    return None


def build_topic_progress(series: TopicSeries) -> TopicProgressData:
    scores = series.scores
    return TopicProgressData(
        topic=series.topic,
        exam_count=len(scores),
        scores=list(scores),
        dates=list(series.dates),
        average_score=round(sum(scores) / len(scores)),
        best_score=max(scores),
        latest_score=scores[-1],
        trend=classify_trend(scores),
        improvement_rate=improvement_rate(scores),
        time_spent_total=series.total_time,
        average_time_per_question=(
            round(series.total_time / series.total_questions)
            if series.total_time > 0 and series.total_questions else 0
        ),
    )


def analyze_topic_progress(
    results: Sequence[ExamResult],
    min_points: int = 1,
) -> List[TopicProgressData]:
    """
    영역별 진척도.

    Args:
        results:    한 학습자의 시험 결과 (순서 무관).
        min_points: 이 개수 이상의 점수가 있는 영역만 포함.

    Returns:
        향상률 내림차순 TopicProgressData 리스트.
    """
    progress = []
    for topic in ALL_TOPICS:
        series = extract_topic_series(results, topic)
        if series.scores and len(series.scores) >= min_points:
            progress.append(build_topic_progress(series))
    return sorted(progress, key=lambda p: p.improvement_rate, reverse=True)
