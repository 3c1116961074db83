from datetime import datetime
from typing import List, Literal, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from data_engineer_cbt.models.validation import (
    ValidationResult,
    check,
    check_array,
    check_non_empty_string,
    check_url,
    has_balanced_brackets,
)
from data_engineer_cbt.util.clock import utcnow

ExamTopic = Literal[
    "Databricks Lakehouse Platform",
    "ELT with Spark SQL and Python",
    "Incremental Data Processing",
    "Production Pipelines",
    "Data Governance",
]
QuestionDifficulty = Literal["easy", "medium", "hard"]
ExamType = Literal["practice", "assessment"]

# 출제/분석 시 항상 이 순서로 순회한다
ALL_TOPICS: Tuple[str, ...] = (
    "Databricks Lakehouse Platform",
    "ELT with Spark SQL and Python",
    "Incremental Data Processing",
    "Production Pipelines",
    "Data Governance",
)
ALL_DIFFICULTIES: Tuple[str, ...] = ("easy", "medium", "hard")

MIN_OPTIONS = 2
MAX_OPTIONS = 6


class Question(BaseModel):
    """
    Databricks Data Engineer 자격증 문제 모델.
    생성 후에는 update_* / add_* 메서드로만 변경 가능 (새 인스턴스 반환).
    """
    id: str = Field(
        default_factory=lambda: f"question_{uuid4().hex}",
        description="문제 고유 식별자"
    )
    topic: ExamTopic = Field(
        ...,
        description="출제 영역 (5개 고정 영역 중 하나)"
    )
    subtopic: str = Field(
        ...,
        description="세부 주제 (예: Structured Streaming)"
    )
    difficulty: QuestionDifficulty = Field(
        "medium",
        description="난이도"
    )
    question_text: str = Field(
        ...,
        description="발문"
    )
    code_example: Optional[str] = Field(
        None,
        description="코드 예시 (없으면 None)"
    )
    options: List[str] = Field(
        ...,
        description="보기 리스트 (순서 유지)"
    )
    correct_answer: int = Field(
        ...,
        description="정답 보기의 인덱스 (0-based)"
    )
    explanation: str = Field(
        ...,
        description="해설"
    )
    documentation_links: List[str] = Field(
        default_factory=list,
        description="참고 문서 링크"
    )
    tags: List[str] = Field(
        default_factory=list,
        description="태그"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: List[str]) -> List[str]:
        return [t.strip() for t in v]

    @model_validator(mode="after")
    def validate_domain_rules(self) -> "Question":
        """
        도메인 규칙 검증. 위반 사항을 모두 모아 DataIntegrityError로 보고한다.
        """
        validate_question(self).raise_if_invalid("Question")
        return self

    # ── 명시적 변경 연산 ──────────────────────────────────────────────────

    def _updated(self, **changes) -> "Question":
        data = self.model_dump()
        data.update(changes, updated_at=utcnow())
        return Question.model_validate(data)

    def update_explanation(self, explanation: str) -> "Question":
        return self._updated(explanation=explanation)

    def add_documentation_link(self, link: str) -> "Question":
        check_url(link).raise_if_invalid("Question")
        return self._updated(documentation_links=[*self.documentation_links, link])

    def add_tag(self, tag: str) -> "Question":
        tag = (tag or "").strip()
        if not tag:
            raise ValueError("Tag cannot be empty")
        if tag in self.tags:
            return self
        return self._updated(tags=[*self.tags, tag])


def validate_question(q: Question) -> ValidationResult:
    """Question 도메인 규칙 검증 (예외 없이 결과만 반환)."""
    options = check_array(q.options, "Options", MIN_OPTIONS, MAX_OPTIONS)
    return ValidationResult.combine(
        check_non_empty_string(q.question_text, "Question text", 10),
        options,
        check(
            all(isinstance(o, str) and o.strip() for o in q.options),
            "All options must be non-empty strings",
        ),
        check(
            0 <= q.correct_answer < len(q.options),
            "Correct answer index must be valid for the given options",
        ),
        check_non_empty_string(q.explanation, "Explanation", 10),
        check_non_empty_string(q.subtopic, "Subtopic"),
        check(
            q.code_example is None or has_balanced_brackets(q.code_example),
            "Code example contains syntax errors",
        ),
        *(check_url(link) for link in q.documentation_links),
    )
