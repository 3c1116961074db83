from collections import Counter
from datetime import timedelta

import pytest
from pydantic import ValidationError

from conftest import T0, make_question, make_result
from data_engineer_cbt.models.exam_result import ExamResult, QuestionResponse
from data_engineer_cbt.models.question_model import ALL_TOPICS, Question
from data_engineer_cbt.models.validation import (
    DataIntegrityError,
    ValidationResult,
    check_url,
    has_balanced_brackets,
)
from data_engineer_cbt.storage.sample_questions import SAMPLE_QUESTIONS


def test_sample_bank_is_valid_and_covers_every_topic():
    counts = Counter(q.topic for q in SAMPLE_QUESTIONS)
    assert set(counts) == set(ALL_TOPICS)
    assert all(n == 3 for n in counts.values())


def test_question_collects_every_violation():
    with pytest.raises(DataIntegrityError) as exc:
        Question(
            topic="Data Governance",
            subtopic="",
            question_text="Too short",
            options=["Only one"],
            correct_answer=3,
            explanation="short",
        )
    errors = exc.value.errors
    assert exc.value.entity == "Question"
    assert "Question text must be at least 10 characters long" in errors
    assert "Options must have at least 2 items" in errors
    assert "Correct answer index must be valid for the given options" in errors
    assert "Explanation must be at least 10 characters long" in errors
    assert "Subtopic is required and must be a string" in errors


def test_question_rejects_unknown_topic_as_type_error():
    with pytest.raises(ValidationError):
        make_question(topic="Machine Learning")


def test_question_rejects_unbalanced_code_example():
    with pytest.raises(DataIntegrityError) as exc:
        Question(
            topic="ELT with Spark SQL and Python",
            subtopic="DataFrames",
            question_text="What does this snippet return?",
            code_example="df.select(col('a')",
            options=["A", "B"],
            correct_answer=0,
            explanation="The snippet selects a single column.",
        )
    assert exc.value.errors == ["Code example contains syntax errors"]


def test_question_updates_return_new_instances():
    q = make_question()
    updated = q.add_tag("  unity-catalog ").add_documentation_link("https://docs.databricks.com/")
    assert q.tags == []
    assert updated.tags == ["unity-catalog"]
    assert updated.documentation_links == ["https://docs.databricks.com/"]
    assert updated.updated_at >= q.updated_at
    assert updated.add_tag("unity-catalog") is updated


def test_question_update_rechecks_rules():
    q = make_question()
    with pytest.raises(DataIntegrityError):
        q.update_explanation("tiny")
    with pytest.raises(DataIntegrityError):
        q.add_documentation_link("ftp://example.com/file")
    with pytest.raises(ValueError):
        q.add_tag("   ")


def test_validation_result_combine_keeps_order():
    combined = ValidationResult.combine(
        ValidationResult(errors=["a"]),
        ValidationResult(),
        ValidationResult(errors=["b", "c"]),
    )
    assert combined.errors == ["a", "b", "c"]
    assert not combined.is_valid
    assert check_url("https://example.com/x").is_valid


def test_balanced_brackets():
    assert has_balanced_brackets("f(a[1], {b: 2})")
    assert not has_balanced_brackets("f(a]")
    assert not has_balanced_brackets("   ")


def test_exam_result_invariants_hold_for_factory_result():
    r = make_result({"Data Governance": 60, "Production Pipelines": 90}, T0, per_topic=10)
    assert len(r.questions) == r.total_questions == 20
    assert r.correct_answers == sum(1 for q in r.questions if q.is_correct) == 15
    assert r.overall_score == 75
    assert r.weak_topics() == ["Data Governance"]
    assert r.strong_topics() == ["Production Pipelines"]


def test_exam_result_rejects_mismatched_responses():
    response = QuestionResponse(question_id="q1", selected_answer=0, is_correct=True)
    with pytest.raises(DataIntegrityError) as exc:
        ExamResult(
            user_id="learner-1",
            start_time=T0,
            end_time=T0 + timedelta(minutes=5),
            total_questions=2,
            correct_answers=0,
            questions=[response],
        )
    assert "Questions array length must match total questions" in exc.value.errors
    assert (
        "Actual correct answers in questions array must match correctAnswers field"
        in exc.value.errors
    )


def test_exam_result_requires_end_after_start():
    with pytest.raises(DataIntegrityError) as exc:
        ExamResult(
            user_id="learner-1",
            start_time=T0,
            end_time=T0,
            total_questions=0,
            correct_answers=0,
        )
    assert exc.value.errors == ["End time must be after start time"]
