"""
ports/result_store.py

시험 결과 영속화 경계.
사용자별 추가 전용 로그로 취급한다. 수정/삭제 없음.
"""

from abc import ABC, abstractmethod
from typing import List

from data_engineer_cbt.models.exam_result import ExamResult


class ResultStore(ABC):

    @abstractmethod
    def store(self, result: ExamResult) -> None:
        """완료된 결과를 소유자 로그 끝에 추가."""
        pass

    @abstractmethod
    def query_by_user(self, user_id: str) -> List[ExamResult]:
        """사용자의 저장된 결과 전체 (추가 순서)."""
        pass
