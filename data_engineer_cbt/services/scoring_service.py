"""
services/scoring_service.py

시험 채점 및 결과 분석 비즈니스 로직.
순수 Python 함수로 구성 — UI 코드, 전역 상태 변경 없음.
"""

import math
from collections import defaultdict
from typing import Dict, List, Sequence

from config import PASS_SCORE, RUSHING_THRESHOLD, SLOW_THRESHOLD
from data_engineer_cbt.models.exam_result import ExamResult, QuestionResponse, TopicScore
from data_engineer_cbt.models.feedback import (
    ComprehensiveFeedback,
    ImmediateFeedback,
    PacingAnalysis,
    PerformanceInsights,
    QuestionFeedback,
    QuestionTiming,
    TimingAnalysis,
    TopicTiming,
)
from data_engineer_cbt.models.question_model import ALL_TOPICS, Question
from data_engineer_cbt.models.validation import DataIntegrityError

# 취약 영역별 보충 학습 안내
TOPIC_REMEDIATION: Dict[str, str] = {
    "Production Pipelines":
        "Review Delta Live Tables, job scheduling, and error handling scenarios.",
    "Incremental Data Processing":
        "Practice merge operations, change data capture, and streaming scenarios.",
    "Databricks Lakehouse Platform":
        "Study core platform concepts, architecture, and data management features.",
    "ELT with Spark SQL and Python":
        "Practice SQL queries, DataFrame operations, and Python transformations.",
    "Data Governance":
        "Review Unity Catalog, access controls, and data lineage concepts.",
}


# ── 영역별 점수 ────────────────────────────────────────────────────────────────

def calculate_topic_breakdown(
    questions: Sequence[Question],
    responses: Sequence[QuestionResponse],
) -> List[TopicScore]:
    """
    고정된 문제 리스트를 영역별로 묶어 정답 수/소요 시간을 집계한다.

    응답은 question_id로 매칭하며, 응답이 없는 문제는 오답(0초)으로 센다.
    세션 엔진의 결과 생성과 채점기가 같은 함수를 사용한다.

    Args:
        questions: 세션에 출제된 Question 리스트 (출제 순서).
        responses: 문제별 응답 (미응답 sentinel 포함 가능).

    Returns:
        ALL_TOPICS 순서로 정렬된 TopicScore 리스트 (출제된 영역만).
    """
    by_id = {r.question_id: r for r in responses}
    buckets: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"total": 0, "correct": 0, "time": 0}
    )

    for q in questions:
        b = buckets[q.topic]
        b["total"] += 1
        resp = by_id.get(q.id)
        if resp is None:
            continue
        if resp.is_correct:
            b["correct"] += 1
        b["time"] += resp.time_spent

    result = []
    for topic in ALL_TOPICS:
        if topic not in buckets:
            continue
        b = buckets[topic]
        result.append(TopicScore(
            topic=topic,
            total_questions=b["total"],
            correct_answers=b["correct"],
            percentage=round(b["correct"] / b["total"] * 100),
            average_time=round(b["time"] / b["total"]),
        ))
    return result


def calculate_overall_score(result: ExamResult) -> int:
    """정답률 (0~100 반올림 정수). 문제가 없으면 0."""
    if result.total_questions == 0:
        return 0
    return round(result.correct_answers / result.total_questions * 100)


def is_passed(score: float, pass_score: float = PASS_SCORE) -> bool:
    """
    합격 여부를 반환한다.

    Args:
        score:      calculate_overall_score()가 반환한 점수 (0 ~ 100).
        pass_score: 합격 기준 점수 (기본값 70점).

    Returns:
        score >= pass_score 이면 True, 아니면 False.
    """
    return score >= pass_score


# ── 문항별 피드백 ──────────────────────────────────────────────────────────────

def generate_question_feedback(
    responses: Sequence[QuestionResponse],
    questions: Sequence[Question],
) -> List[QuestionFeedback]:
    """응답과 같은 위치의 문제를 짝지어 해설/참고 링크를 붙인다."""
    feedback = []
    for index, response in enumerate(responses):
        if index >= len(questions):
            raise DataIntegrityError(
                "ExamResult", [f"Question not found for response at index {index}"]
            )
        q = questions[index]
        feedback.append(QuestionFeedback(
            question_id=response.question_id,
            question_text=q.question_text,
            selected_answer=response.selected_answer,
            correct_answer=q.correct_answer,
            is_correct=response.is_correct,
            explanation=q.explanation,
            documentation_links=list(q.documentation_links),
            time_spent=response.time_spent,
            topic=q.topic,
        ))
    return feedback


# ── 시간 분석 ──────────────────────────────────────────────────────────────────

def calculate_timing_analysis(
    responses: Sequence[QuestionResponse],
    questions: Sequence[Question],
) -> TimingAnalysis:
    """
    총/평균 소요 시간, 가장 빠른/느린 문제, 영역별 시간, 페이스 분석.

    Raises:
        DataIntegrityError: 응답이 하나도 없을 때.
    """
    if not responses:
        raise DataIntegrityError("ExamResult", ["No responses provided for timing analysis"])

    total = sum(r.time_spent for r in responses)
    average = round(total / len(responses))

    # 동률이면 먼저 나온 문제 유지
    fastest = min(responses, key=lambda r: r.time_spent)
    slowest = max(responses, key=lambda r: r.time_spent)

    topic_time: Dict[str, Dict[str, int]] = {}
    for index, response in enumerate(responses):
        if index >= len(questions):
            break
        data = topic_time.setdefault(questions[index].topic, {"total": 0, "count": 0})
        data["total"] += response.time_spent
        data["count"] += 1

    time_by_topic = [
        TopicTiming(
            topic=topic,
            total_time=data["total"],
            average_time=round(data["total"] / data["count"]),
            question_count=data["count"],
        )
        for topic, data in topic_time.items()
    ]

    return TimingAnalysis(
        total_time_spent=total,
        average_time_per_question=average,
        fastest_question=QuestionTiming(question_id=fastest.question_id, time_spent=fastest.time_spent),
        slowest_question=QuestionTiming(question_id=slowest.question_id, time_spent=slowest.time_spent),
        time_by_topic=time_by_topic,
        pacing_analysis=analyze_pacing(responses, average),
    )


def _time_deviation(responses: Sequence[QuestionResponse], average_time: float) -> float:
    # 모표준편차
    variance = sum((r.time_spent - average_time) ** 2 for r in responses) / len(responses)
    return math.sqrt(variance)


def analyze_pacing(
    responses: Sequence[QuestionResponse],
    average_time: float,
) -> PacingAnalysis:
    """
    페이스 분석.

    - RUSHING_THRESHOLD(30초) 미만: 서두른 문제
    - SLOW_THRESHOLD(300초) 초과: 지연 문제
    - 표준편차 < 평균/2 이고 서두름/지연이 각각 3개 미만이면 균형 잡힌 페이스
    """
    rushing = [r.question_id for r in responses if r.time_spent < RUSHING_THRESHOLD]
    slow = [r.question_id for r in responses if r.time_spent > SLOW_THRESHOLD]

    deviation = _time_deviation(responses, average_time) if responses else 0.0
    well_paced = deviation < average_time * 0.5 and len(rushing) < 3 and len(slow) < 3

    recommendations = []
    if len(rushing) > 2:
        recommendations.append(
            "Consider spending more time reading questions carefully to avoid careless mistakes."
        )
    if len(slow) > 2:
        recommendations.append(
            "Practice time management - aim to spend no more than 4-5 minutes per question."
        )
    if deviation > average_time:
        recommendations.append("Work on consistent pacing throughout the exam.")
    if well_paced:
        recommendations.append(
            "Excellent time management! Your pacing was consistent throughout the exam."
        )

    return PacingAnalysis(
        is_well_paced=well_paced,
        rushing_questions=rushing,
        slow_questions=slow,
        time_deviation=round(deviation, 2),
        recommendations=recommendations,
    )


# ── 학습 인사이트 ──────────────────────────────────────────────────────────────

def generate_performance_insights(
    result: ExamResult,
    timing: TimingAnalysis,
) -> PerformanceInsights:
    """점수 구간, 영역별 강/약점, 페이스 결과로 강점/약점/추천을 만든다."""
    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []

    score = calculate_overall_score(result)
    if score >= 80:
        strengths.append(
            "Excellent overall performance - you're well-prepared for the certification exam."
        )
    elif score >= 70:
        strengths.append("Good overall performance with room for targeted improvement.")
    else:
        weaknesses.append("Overall score needs improvement to meet certification standards.")
        recommendations.append(
            "Focus on comprehensive review of all topics before attempting the certification exam."
        )

    strong = [t.topic for t in result.topic_breakdown if t.percentage >= 80]
    weak = [t.topic for t in result.topic_breakdown if t.percentage < 70]
    if strong:
        strengths.append(f"Strong performance in: {', '.join(strong)}")
    if weak:
        weaknesses.append(f"Needs improvement in: {', '.join(weak)}")
        recommendations.append(f"Focus additional study time on: {', '.join(weak)}")

    pacing = timing.pacing_analysis
    if pacing.is_well_paced:
        strengths.append("Excellent time management and consistent pacing.")
    else:
        if len(pacing.rushing_questions) > 2:
            weaknesses.append("Tendency to rush through questions too quickly.")
        if len(pacing.slow_questions) > 2:
            weaknesses.append("Spending too much time on difficult questions.")

    recommendations.extend(pacing.recommendations)
    recommendations.extend(TOPIC_REMEDIATION[t] for t in weak if t in TOPIC_REMEDIATION)

    return PerformanceInsights(
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
    )


# ── 종합/즉시 피드백 ───────────────────────────────────────────────────────────

def generate_comprehensive_feedback(
    result: ExamResult,
    questions: Sequence[Question],
) -> ComprehensiveFeedback:
    """
    완료된 시험의 종합 피드백.

    Args:
        result:    완료된 ExamResult.
        questions: result.questions와 같은 순서의 Question 리스트.

    Raises:
        DataIntegrityError: 문제 리스트가 비었거나 응답 수와 다를 때.
    """
    if not questions:
        raise DataIntegrityError("ExamResult", ["Invalid exam result or questions data"])
    if len(result.questions) != len(questions):
        raise DataIntegrityError(
            "ExamResult", ["Mismatch between exam result questions and provided questions"]
        )

    timing = calculate_timing_analysis(result.questions, questions)
    return ComprehensiveFeedback(
        exam_result=result,
        overall_score=calculate_overall_score(result),
        topic_breakdown=list(result.topic_breakdown),
        question_feedback=generate_question_feedback(result.questions, questions),
        timing_analysis=timing,
        performance_insights=generate_performance_insights(result, timing),
    )


def format_duration(seconds: int) -> str:
    """초 → "1h 5m" / "42m"."""
    hours, rest = divmod(seconds, 3600)
    minutes = rest // 60
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def generate_immediate_feedback(result: ExamResult) -> ImmediateFeedback:
    """결과 화면 상단용 간단 요약."""
    score = calculate_overall_score(result)
    ranked = sorted(result.topic_breakdown, key=lambda t: t.percentage, reverse=True)
    return ImmediateFeedback(
        score=score,
        passed=is_passed(score),
        correct_answers=result.correct_answers,
        total_questions=result.total_questions,
        time_spent=format_duration(result.time_spent),
        top_performing_topic=ranked[0].topic if ranked else "N/A",
        weakest_topic=ranked[-1].topic if ranked else "N/A",
    )


def validate_for_scoring(result: ExamResult) -> List[str]:
    """채점 전 점검. 위반 사항 리스트를 반환하며 예외를 던지지 않는다."""
    errors = []
    if not result.id:
        errors.append("Exam result ID is required")
    if not result.user_id:
        errors.append("User ID is required")
    if result.total_questions <= 0:
        errors.append("Total questions must be greater than 0")
    if result.correct_answers < 0 or result.correct_answers > result.total_questions:
        errors.append("Correct answers must be between 0 and total questions")
    if len(result.questions) != result.total_questions:
        errors.append("Questions array must match total questions count")
    if not result.topic_breakdown:
        errors.append("Topic breakdown is required for scoring")
    if result.time_spent < 0:
        errors.append("Time spent must be non-negative")
    return errors
