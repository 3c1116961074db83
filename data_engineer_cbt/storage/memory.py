"""
storage/memory.py — 인메모리 문제 은행 / 결과 로그

영속화 엔진은 범위 밖이므로 포트(ports/)의 최소 구현만 제공한다.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from data_engineer_cbt.models.exam_result import ExamResult
from data_engineer_cbt.models.question_model import Question
from data_engineer_cbt.ports.question_store import QuestionFilters, QuestionStore
from data_engineer_cbt.ports.result_store import ResultStore

logger = logging.getLogger(__name__)


def _matches(q: Question, f: QuestionFilters) -> bool:
    if f.topic and q.topic != f.topic:
        return False
    if f.subtopic and f.subtopic.lower() not in q.subtopic.lower():
        return False
    if f.difficulty and q.difficulty != f.difficulty:
        return False
    if f.has_code_example is not None and (q.code_example is not None) != f.has_code_example:
        return False
    if f.tags and not set(f.tags) & set(q.tags):
        return False
    if f.ids is not None and q.id not in f.ids:
        return False
    if f.search_text:
        needle = f.search_text.lower()
        haystacks = (q.question_text, q.explanation, q.subtopic)
        if not any(needle in h.lower() for h in haystacks):
            return False
    return True


class InMemoryQuestionStore(QuestionStore):
    """등록 순서를 유지하는 메모리 문제 은행."""

    def __init__(self, questions: Iterable[Question] = ()):
        self._lock = threading.Lock()
        self._questions: Dict[str, Question] = {}
        self.add_all(questions)

    def add(self, question: Question) -> Question:
        with self._lock:
            self._questions[question.id] = question
        return question

    def add_all(self, questions: Iterable[Question]) -> int:
        added = 0
        for q in questions:
            self.add(q)
            added += 1
        return added

    def get(self, question_id: str) -> Optional[Question]:
        with self._lock:
            return self._questions.get(question_id)

    def _snapshot(self) -> List[Question]:
        with self._lock:
            return list(self._questions.values())

    def find_by_topic(self, topic: str, limit: Optional[int] = None) -> List[Question]:
        found = [q for q in self._snapshot() if q.topic == topic]
        return found if limit is None else found[:limit]

    def find_all(self, filters: Optional[QuestionFilters] = None) -> List[Question]:
        f = filters or QuestionFilters()
        found = [q for q in self._snapshot() if _matches(q, f)]
        found = found[f.offset:]
        return found if f.limit is None else found[:f.limit]

    def count(self, filters: Optional[QuestionFilters] = None) -> int:
        f = filters or QuestionFilters()
        return sum(1 for q in self._snapshot() if _matches(q, f))


class InMemoryResultStore(ResultStore):
    """사용자별 추가 전용 결과 로그."""

    def __init__(self):
        self._lock = threading.Lock()
        self._results: Dict[str, List[ExamResult]] = defaultdict(list)

    def store(self, result: ExamResult) -> None:
        with self._lock:
            self._results[result.user_id].append(result)
        logger.info(f"결과 저장: user={result.user_id} result={result.id}")

    def query_by_user(self, user_id: str) -> List[ExamResult]:
        with self._lock:
            return list(self._results.get(user_id, []))
