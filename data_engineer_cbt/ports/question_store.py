"""
ports/question_store.py

문제 은행 조회 인터페이스.
출제기(adaptive_allocator)는 구체 DB가 아닌 이 추상화에 의존한다.

구현체:
- InMemoryQuestionStore: 번들 앱/테스트용 메모리 문제 은행
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel

from data_engineer_cbt.models.question_model import ExamTopic, Question, QuestionDifficulty


class QuestionFilters(BaseModel):
    """문제 조회 필터. 지정하지 않은 필드는 필터링하지 않는다."""

    topic: Optional[ExamTopic] = None
    subtopic: Optional[str] = None
    difficulty: Optional[QuestionDifficulty] = None
    tags: Optional[List[str]] = None
    has_code_example: Optional[bool] = None
    search_text: Optional[str] = None
    ids: Optional[List[str]] = None
    limit: Optional[int] = None
    offset: int = 0


class QuestionStore(ABC):
    """문제 은행 읽기 전용 포트."""

    @abstractmethod
    def find_by_topic(self, topic: str, limit: Optional[int] = None) -> List[Question]:
        """
        영역별 문제를 최대 limit개 반환한다.

        Args:
            topic: ALL_TOPICS 중 하나
            limit: 최대 개수 (None이면 전체)

        Returns:
            저장소 기본 순서의 Question 리스트
        """
        pass

    @abstractmethod
    def find_all(self, filters: Optional[QuestionFilters] = None) -> List[Question]:
        """필터에 맞는 문제 전체 (limit/offset 페이징 적용)."""
        pass

    @abstractmethod
    def count(self, filters: Optional[QuestionFilters] = None) -> int:
        """필터에 맞는 문제 수 (페이징 무시)."""
        pass
