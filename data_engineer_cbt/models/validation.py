"""
models/validation.py

엔티티 무결성 검증 결과 타입과 공용 검증 헬퍼.
첫 번째 위반에서 멈추지 않고 위반 사항을 모두 모아 반환한다.
"""

from typing import Any, List, Sequence
from urllib.parse import urlparse

from pydantic import BaseModel, Field


class DataIntegrityError(Exception):
    """
    상위 생산자(문제 등록, 결과 생성)의 버그를 의미하는 무결성 오류.

    Attributes:
        entity: 검증 대상 엔티티 이름 (예: "Question", "ExamResult")
        errors: 사람이 읽을 수 있는 위반 사항 리스트
    """

    def __init__(self, entity: str, errors: Sequence[str]):
        self.entity = entity
        self.errors = list(errors)
        super().__init__(f"{entity} validation failed: {', '.join(self.errors)}")


class ValidationResult(BaseModel):
    """검증 결과. errors가 비어 있으면 유효."""

    errors: List[str] = Field(default_factory=list, description="위반 사항 리스트")

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def combine(cls, *results: "ValidationResult") -> "ValidationResult":
        """여러 검증 결과를 순서대로 합친다."""
        return cls(errors=[e for r in results for e in r.errors])

    def raise_if_invalid(self, entity: str) -> None:
        if self.errors:
            raise DataIntegrityError(entity, self.errors)


def check(condition: bool, message: str) -> ValidationResult:
    return ValidationResult() if condition else ValidationResult(errors=[message])


def check_non_empty_string(value: Any, field_name: str, min_length: int = 1) -> ValidationResult:
    if not value or not isinstance(value, str):
        return ValidationResult(errors=[f"{field_name} is required and must be a string"])
    if len(value.strip()) < min_length:
        return ValidationResult(errors=[f"{field_name} must be at least {min_length} characters long"])
    return ValidationResult()


def check_non_negative_int(value: Any, field_name: str) -> ValidationResult:
    if isinstance(value, bool) or not isinstance(value, int):
        return ValidationResult(errors=[f"{field_name} must be an integer"])
    if value < 0:
        return ValidationResult(errors=[f"{field_name} must be non-negative"])
    return ValidationResult()


def check_percentage(value: Any, field_name: str) -> ValidationResult:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ValidationResult(errors=[f"{field_name} must be a number"])
    if value < 0 or value > 100:
        return ValidationResult(errors=[f"{field_name} must be between 0 and 100"])
    return ValidationResult()


def check_array(value: Any, field_name: str, min_length: int = 0, max_length: int = 0) -> ValidationResult:
    if not isinstance(value, (list, tuple)):
        return ValidationResult(errors=[f"{field_name} must be an array"])
    errors = []
    if len(value) < min_length:
        errors.append(f"{field_name} must have at least {min_length} items")
    if max_length and len(value) > max_length:
        errors.append(f"{field_name} cannot have more than {max_length} items")
    return ValidationResult(errors=errors)


def check_url(value: Any) -> ValidationResult:
    if not value or not isinstance(value, str):
        return ValidationResult(errors=["URL is required and must be a string"])
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ValidationResult(errors=["URL must be in valid format"])
    return ValidationResult()


def has_balanced_brackets(code: str) -> bool:
    """코드 예시의 괄호 짝이 맞는지 확인 (빈 문자열은 False)."""
    code = code.strip()
    if not code:
        return False
    pairs = {"(": ")", "[": "]", "{": "}"}
    closing = set(pairs.values())
    stack: List[str] = []
    for ch in code:
        if ch in pairs:
            stack.append(pairs[ch])
        elif ch in closing:
            if not stack or stack.pop() != ch:
                return False
    return not stack
