"""
api/app.py — FastAPI 앱 인스턴스 + 코어 서비스 조립 + 만료 세션 정리 스레드
"""

import logging
import random
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CLEANUP_INTERVAL
from api.routes import router
from data_engineer_cbt.models.validation import DataIntegrityError
from data_engineer_cbt.ports.question_store import QuestionStore
from data_engineer_cbt.ports.result_store import ResultStore
from data_engineer_cbt.services.adaptive_allocator import AdaptiveAllocator
from data_engineer_cbt.services.exam_engine import EngineConfig, ExamEngine
from data_engineer_cbt.services.progress_tracker import ProgressTracker
from data_engineer_cbt.services.scheduler import Scheduler
from data_engineer_cbt.storage.memory import InMemoryQuestionStore, InMemoryResultStore
from data_engineer_cbt.storage.sample_questions import SAMPLE_QUESTIONS
from data_engineer_cbt.util.clock import utcnow

logger = logging.getLogger(__name__)


def create_app(
    question_store: Optional[QuestionStore] = None,
    result_store: Optional[ResultStore] = None,
    scheduler: Optional[Scheduler] = None,
    clock: Callable[[], datetime] = utcnow,
    rng: Optional[random.Random] = None,
    engine_config: Optional[EngineConfig] = None,
    start_cleanup: bool = True,
) -> FastAPI:
    """
    앱을 만들고 코어 서비스를 app.state에 연결한다.

    저장소를 넘기지 않으면 샘플 문제 은행과 메모리 결과 로그를 사용한다.
    세션 완료 결과는 엔진 → ProgressTracker.store_result로 바로 누적된다
    (시간 만료로 자동 완료된 세션 포함).
    """
    app = FastAPI(title="Databricks Data Engineer CBT")

    # CORS (모바일 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    question_store = question_store or InMemoryQuestionStore(SAMPLE_QUESTIONS)
    result_store = result_store or InMemoryResultStore()
    allocator = AdaptiveAllocator(question_store, rng=rng)
    tracker = ProgressTracker(result_store, allocator, clock=clock)
    engine = ExamEngine(
        scheduler=scheduler,
        config=engine_config,
        clock=clock,
        on_complete=tracker.store_result,
    )

    app.state.question_store = question_store
    app.state.result_store = result_store
    app.state.allocator = allocator
    app.state.tracker = tracker
    app.state.engine = engine

    @app.exception_handler(DataIntegrityError)
    async def integrity_error_handler(request: Request, exc: DataIntegrityError):
        logger.warning(f"데이터 무결성 오류: {exc}")
        return JSONResponse(
            status_code=422,
            content={"detail": f"{exc.entity} 데이터가 올바르지 않습니다.", "errors": exc.errors},
        )

    app.include_router(router)

    # 만료 세션 주기적 정리 (5분마다)
    def _cleanup_loop():
        while True:
            time.sleep(CLEANUP_INTERVAL)
            engine.cleanup_expired()

    if start_cleanup:
        t = threading.Thread(target=_cleanup_loop, daemon=True)
        t.start()

    return app
