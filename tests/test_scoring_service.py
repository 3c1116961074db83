from datetime import timedelta

import pytest

from conftest import T0, make_question, make_result
from data_engineer_cbt.models.exam_result import ExamResult, QuestionResponse
from data_engineer_cbt.models.session_state import ExamSession
from data_engineer_cbt.models.validation import DataIntegrityError
from data_engineer_cbt.services.exam_engine import build_exam_result
from data_engineer_cbt.services.scoring_service import (
    TOPIC_REMEDIATION,
    analyze_pacing,
    calculate_topic_breakdown,
    format_duration,
    generate_comprehensive_feedback,
    generate_immediate_feedback,
    is_passed,
    validate_for_scoring,
)

DG = "Data Governance"
PP = "Production Pipelines"


def _graded(specs):
    """(영역, 정답 여부, 소요 초) 목록으로 문제 리스트와 결과를 만든다."""
    questions = [make_question(topic, qid=f"q{i}") for i, (topic, _, _) in enumerate(specs)]
    responses = [
        QuestionResponse(
            question_id=q.id,
            selected_answer=0 if correct else 1,
            is_correct=correct,
            time_spent=seconds,
            answered_at=T0,
        )
        for q, (_, correct, seconds) in zip(questions, specs)
    ]
    session = ExamSession(
        user_id="learner-1",
        questions=questions,
        responses=responses,
        start_time=T0,
        time_remaining=0,
    )
    end = T0 + timedelta(seconds=sum(s for _, _, s in specs))
    return questions, build_exam_result(session, end)


def test_topic_breakdown_counts_missing_responses_as_wrong():
    questions = [make_question(DG, qid="a"), make_question(PP, qid="b"), make_question(DG, qid="c")]
    responses = [
        QuestionResponse(question_id="a", selected_answer=0, is_correct=True, time_spent=40),
        QuestionResponse(question_id="c", selected_answer=1, is_correct=False, time_spent=80),
    ]

    breakdown = calculate_topic_breakdown(questions, responses)

    assert [t.topic for t in breakdown] == [PP, DG]
    by_topic = {t.topic: t for t in breakdown}
    assert (by_topic[DG].correct_answers, by_topic[DG].percentage, by_topic[DG].average_time) == (1, 50, 60)
    assert (by_topic[PP].total_questions, by_topic[PP].percentage) == (1, 0)


def test_pass_threshold():
    assert is_passed(70)
    assert not is_passed(69)
    assert is_passed(60, pass_score=60)


def test_consistent_pacing_is_well_paced():
    questions, result = _graded([(DG, True, 90)] * 4)

    feedback = generate_comprehensive_feedback(result, questions)
    timing = feedback.timing_analysis

    assert feedback.overall_score == 100
    assert timing.total_time_spent == 360
    assert timing.average_time_per_question == 90
    assert timing.fastest_question.question_id == "q0"
    assert timing.slowest_question.question_id == "q0"
    assert [(t.topic, t.total_time, t.question_count) for t in timing.time_by_topic] == [(DG, 360, 4)]

    pacing = timing.pacing_analysis
    assert pacing.is_well_paced
    assert pacing.rushing_questions == []
    assert pacing.slow_questions == []
    assert pacing.time_deviation == 0
    assert pacing.recommendations == [
        "Excellent time management! Your pacing was consistent throughout the exam."
    ]
    assert "Excellent time management and consistent pacing." in feedback.performance_insights.strengths
    assert feedback.performance_insights.weaknesses == []


def test_rushing_and_slow_questions_are_flagged():
    rushed = [QuestionResponse(question_id=f"r{i}", selected_answer=0, is_correct=True, time_spent=t)
              for i, t in enumerate([10, 10, 10, 100])]
    pacing = analyze_pacing(rushed, 32.5)

    assert not pacing.is_well_paced
    assert pacing.rushing_questions == ["r0", "r1", "r2"]
    assert (
        "Consider spending more time reading questions carefully to avoid careless mistakes."
        in pacing.recommendations
    )
    assert "Work on consistent pacing throughout the exam." in pacing.recommendations

    slow = [QuestionResponse(question_id=f"s{i}", selected_answer=0, is_correct=True, time_spent=t)
            for i, t in enumerate([400, 400, 400, 30])]
    pacing = analyze_pacing(slow, 307.5)
    assert pacing.slow_questions == ["s0", "s1", "s2"]
    assert (
        "Practice time management - aim to spend no more than 4-5 minutes per question."
        in pacing.recommendations
    )


def test_low_score_insights_name_weak_topics():
    questions, result = _graded([(DG, True, 60), (DG, False, 60), (PP, False, 60), (PP, False, 60)])

    insights = generate_comprehensive_feedback(result, questions).performance_insights

    assert "Overall score needs improvement to meet certification standards." in insights.weaknesses
    assert f"Needs improvement in: {PP}, {DG}" in insights.weaknesses
    assert TOPIC_REMEDIATION[DG] in insights.recommendations
    assert TOPIC_REMEDIATION[PP] in insights.recommendations


def test_question_feedback_pairs_by_position():
    questions, result = _graded([(DG, True, 30), (PP, False, 45)])

    feedback = generate_comprehensive_feedback(result, questions).question_feedback

    assert [f.question_id for f in feedback] == ["q0", "q1"]
    assert feedback[1].selected_answer == 1
    assert feedback[1].correct_answer == 0
    assert feedback[1].topic == PP
    assert feedback[0].explanation == questions[0].explanation


def test_comprehensive_feedback_rejects_mismatched_questions():
    questions, result = _graded([(DG, True, 30), (PP, False, 45)])

    with pytest.raises(DataIntegrityError) as exc:
        generate_comprehensive_feedback(result, questions[:1])
    assert exc.value.errors == ["Mismatch between exam result questions and provided questions"]

    with pytest.raises(DataIntegrityError) as exc:
        generate_comprehensive_feedback(result, [])
    assert exc.value.errors == ["Invalid exam result or questions data"]


def test_immediate_feedback():
    result = make_result({DG: 100, PP: 50}, T0, per_topic=10, seconds_per_question=195)

    summary = generate_immediate_feedback(result)

    assert summary.score == 75
    assert summary.passed
    assert summary.correct_answers == 15
    assert summary.total_questions == 20
    assert summary.time_spent == "1h 5m"
    assert summary.top_performing_topic == DG
    assert summary.weakest_topic == PP


def test_format_duration():
    assert format_duration(2520) == "42m"
    assert format_duration(3600) == "1h 0m"
    assert format_duration(59) == "0m"


def test_validate_for_scoring_lists_violations():
    empty = ExamResult(
        user_id="learner-1",
        start_time=T0,
        end_time=T0 + timedelta(seconds=1),
        total_questions=0,
        correct_answers=0,
    )
    assert validate_for_scoring(empty) == [
        "Total questions must be greater than 0",
        "Topic breakdown is required for scoring",
    ]
    assert validate_for_scoring(make_result({DG: 80}, T0, per_topic=10)) == []
