"""
api/routes.py — FastAPI 엔드포인트

코어 서비스(app.state)에 그대로 위임하는 얇은 계층.
    404: 세션/사용자/결과 없음
    409: 현재 상태에서 허용되지 않는 요청
    400: 잘못된 입력
    422: 데이터 무결성 오류 (api/app.py 예외 핸들러)
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

import config

from data_engineer_cbt.models.exam_result import ExamResult
from data_engineer_cbt.models.question_model import ExamType, Question
from data_engineer_cbt.models.session_state import ExamSession
from data_engineer_cbt.ports.question_store import QuestionFilters
from data_engineer_cbt.services import scoring_service
from data_engineer_cbt.services.adaptive_allocator import AdaptiveAllocator
from data_engineer_cbt.services.exam_engine import ExamEngine
from data_engineer_cbt.services.progress_tracker import ProgressTracker

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class StartSessionBody(BaseModel):
    user_id: str = Field(..., min_length=1)
    exam_type: ExamType = "practice"
    total_questions: Optional[int] = Field(None, ge=1)
    topic_distribution: Optional[Dict[str, int]] = None

class AnswerBody(BaseModel):
    question_id: str
    selected_answer: int

class NavigateBody(BaseModel):
    index: int = 0

class AssessmentConfigBody(BaseModel):
    total_questions: int = Field(..., ge=0)
    topic_distribution: Dict[str, int]


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _engine(request: Request) -> ExamEngine:
    return request.app.state.engine


def _allocator(request: Request) -> AdaptiveAllocator:
    return request.app.state.allocator


def _tracker(request: Request) -> ProgressTracker:
    return request.app.state.tracker


def _question_to_dict(q: Question, reveal: bool = False) -> dict:
    d = {
        "id": q.id,
        "topic": q.topic,
        "subtopic": q.subtopic,
        "difficulty": q.difficulty,
        "question_text": q.question_text,
        "code_example": q.code_example,
        "options": q.options,
    }
    # 정답/해설은 완료된 세션에서만 공개
    if reveal:
        d.update({
            "correct_answer": q.correct_answer,
            "explanation": q.explanation,
            "documentation_links": q.documentation_links,
        })
    return d


def _session_to_dict(s: ExamSession, review_mode: bool) -> dict:
    current = s.current_question
    return {
        "id": s.id,
        "user_id": s.user_id,
        "exam_type": s.exam_type,
        "current_question_index": s.current_question_index,
        "total": len(s.questions),
        "answered_count": s.answered_count,
        "time_remaining": s.time_remaining,
        "start_time": s.start_time,
        "is_completed": s.is_completed,
        "is_paused": s.is_paused,
        "review_mode": review_mode,
        "current_question": _question_to_dict(current, reveal=s.is_completed) if current else None,
    }


def _require_session(request: Request, session_id: str) -> ExamSession:
    s = _engine(request).get_session(session_id)
    if s is None:
        raise HTTPException(status_code=404, detail="시험 세션을 찾을 수 없습니다.")
    return s


def _find_result(request: Request, user_id: str, result_id: str) -> ExamResult:
    for r in _tracker(request).get_exam_history(user_id):
        if r.id == result_id:
            return r
    raise HTTPException(status_code=404, detail="시험 결과를 찾을 수 없습니다.")


# ── 세션 ─────────────────────────────────────────────────────────────────────

@router.post("/api/sessions")
async def start_session(request: Request, body: StartSessionBody):
    allocator = _allocator(request)
    tracker = _tracker(request)

    if body.exam_type == "assessment":
        total = body.total_questions or allocator.config.total_questions
        assessment = tracker.comprehensive_assessment_config(total, body.topic_distribution)
        if assessment is None:
            raise HTTPException(status_code=400, detail="영역별 문항 수 구성이 올바르지 않습니다.")
        questions = allocator.generate_distribution_question_set(assessment.topic_distribution)
    else:
        alloc_config = None
        if body.total_questions:
            alloc_config = allocator.config.model_copy(update={"total_questions": body.total_questions})
        questions = allocator.generate_question_set(tracker.get_exam_history(body.user_id), alloc_config)

    if not questions:
        raise HTTPException(status_code=400, detail="출제할 문제가 없습니다.")

    engine = _engine(request)
    s = engine.start_session(body.user_id, body.exam_type, questions)
    return _session_to_dict(s, review_mode=False)


@router.get("/api/sessions/{session_id}")
async def get_session(request: Request, session_id: str):
    s = _require_session(request, session_id)
    return _session_to_dict(s, _engine(request).is_in_review_mode(session_id))


@router.post("/api/sessions/{session_id}/answer")
async def submit_answer(request: Request, session_id: str, body: AnswerBody):
    engine = _engine(request)
    _require_session(request, session_id)
    try:
        ok = engine.submit_answer(session_id, body.question_id, body.selected_answer)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        raise HTTPException(status_code=409, detail="현재 문제에 대한 답안만 제출할 수 있습니다.")
    s = engine.get_session(session_id)
    return {
        "ok": True,
        "answered_count": s.answered_count,
        "is_completed": s.is_completed,
        "current_question_index": s.current_question_index,
    }


@router.post("/api/sessions/{session_id}/pause")
async def pause_session(request: Request, session_id: str):
    _require_session(request, session_id)
    if not _engine(request).pause(session_id):
        raise HTTPException(status_code=409, detail="진행 중인 시험만 일시정지할 수 있습니다.")
    return {"ok": True, "time_remaining": _engine(request).get_time_remaining(session_id)}


@router.post("/api/sessions/{session_id}/resume")
async def resume_session(request: Request, session_id: str):
    _require_session(request, session_id)
    if not _engine(request).resume(session_id):
        raise HTTPException(status_code=409, detail="일시정지된 시험만 재개할 수 있습니다.")
    return {"ok": True, "time_remaining": _engine(request).get_time_remaining(session_id)}


@router.post("/api/sessions/{session_id}/complete")
async def complete_early(request: Request, session_id: str):
    _require_session(request, session_id)
    result = _engine(request).complete_early(session_id)
    if result is None:
        raise HTTPException(status_code=409, detail="진행 중인 시험만 조기 완료할 수 있습니다.")
    return result


@router.post("/api/sessions/{session_id}/force-complete")
async def force_complete(request: Request, session_id: str):
    _require_session(request, session_id)
    result = _engine(request).force_complete(session_id)
    if result is None:
        raise HTTPException(status_code=409, detail="이미 종료된 시험입니다.")
    return result


@router.post("/api/sessions/{session_id}/navigate")
async def navigate(request: Request, session_id: str, body: NavigateBody):
    s = _require_session(request, session_id)
    if not s.is_completed:
        raise HTTPException(status_code=409, detail="검토 모드에서만 문제를 이동할 수 있습니다.")
    if not _engine(request).navigate_to_question(session_id, body.index):
        raise HTTPException(status_code=400, detail="문제 번호가 범위를 벗어났습니다.")
    s = _engine(request).get_session(session_id)
    return {"index": s.current_question_index, "question": _question_to_dict(s.current_question, reveal=True)}


@router.get("/api/sessions/{session_id}/review")
async def review_status(request: Request, session_id: str):
    s = _require_session(request, session_id)
    return {
        "review_mode": _engine(request).is_in_review_mode(session_id),
        "time_remaining": s.time_remaining,
        "is_completed": s.is_completed,
    }


@router.get("/api/sessions/{session_id}/result")
async def retrieve_result(request: Request, session_id: str):
    _require_session(request, session_id)
    result = _engine(request).retrieve_result(session_id)
    if result is None:
        raise HTTPException(status_code=409, detail="시험이 아직 완료되지 않았습니다.")
    return result


@router.delete("/api/sessions/{session_id}")
async def end_session(request: Request, session_id: str):
    if not _engine(request).end_session(session_id):
        raise HTTPException(status_code=404, detail="시험 세션을 찾을 수 없습니다.")
    return {"ok": True}


# ── 사용자 이력/분석 ─────────────────────────────────────────────────────────

@router.get("/api/users/{user_id}/sessions")
async def user_sessions(request: Request, user_id: str):
    engine = _engine(request)
    return [
        _session_to_dict(s, engine.is_in_review_mode(s.id))
        for s in engine.get_user_active_sessions(user_id)
    ]


@router.get("/api/users/{user_id}/history")
async def historical_data(request: Request, user_id: str):
    data = _tracker(request).get_historical_data(user_id)
    if data is None:
        raise HTTPException(status_code=404, detail="학습 이력이 없습니다.")
    return data


@router.get("/api/users/{user_id}/trends")
async def performance_trends(
    request: Request,
    user_id: str,
    timeframe: Optional[str] = None,
    topic: Optional[str] = None,
    exam_type: Optional[str] = None,
):
    if timeframe not in (None, "week", "month", "quarter", "year", "all"):
        raise HTTPException(status_code=400, detail="timeframe은 week/month/quarter/year/all 중 하나여야 합니다.")
    return _tracker(request).get_performance_trends(user_id, timeframe, topic, exam_type)


@router.get("/api/users/{user_id}/topic-progress")
async def topic_progress(request: Request, user_id: str):
    return _tracker(request).get_topic_progress(user_id)


@router.get("/api/users/{user_id}/weak-areas")
async def weak_areas(request: Request, user_id: str, threshold: float = config.WEAK_AREA_THRESHOLD):
    return _tracker(request).identify_weak_areas(user_id, threshold)


@router.get("/api/users/{user_id}/prioritization")
async def prioritization(request: Request, user_id: str, recent_session_count: int = 3):
    if recent_session_count < 2:
        raise HTTPException(status_code=400, detail="recent_session_count는 2 이상이어야 합니다.")
    return _tracker(request).build_prioritization(user_id, recent_session_count)


@router.get("/api/users/{user_id}/analytics")
async def analytics(request: Request, user_id: str):
    data = _tracker(request).comprehensive_analytics(user_id)
    if data is None:
        raise HTTPException(status_code=404, detail="학습 이력이 없습니다.")
    return data


@router.get("/api/users/{user_id}/recommendations")
async def recommendations(request: Request, user_id: str):
    return _tracker(request).get_study_recommendations(user_id)


@router.get("/api/users/{user_id}/results/{result_id}/feedback")
async def comprehensive_feedback(request: Request, user_id: str, result_id: str):
    result = _find_result(request, user_id, result_id)
    ids = [r.question_id for r in result.questions]
    found = {q.id: q for q in request.app.state.question_store.find_all(QuestionFilters(ids=ids))}
    questions: List[Question] = [found[i] for i in ids if i in found]
    return scoring_service.generate_comprehensive_feedback(result, questions)


@router.get("/api/users/{user_id}/results/{result_id}/summary")
async def immediate_feedback(request: Request, user_id: str, result_id: str):
    result = _find_result(request, user_id, result_id)
    return scoring_service.generate_immediate_feedback(result)


# ── 종합 평가 구성 ───────────────────────────────────────────────────────────

@router.get("/api/assessment-config")
async def default_assessment_config(request: Request, total_questions: int = config.DEFAULT_TOTAL_QUESTIONS):
    assessment = _tracker(request).comprehensive_assessment_config(total_questions)
    if assessment is None:
        raise HTTPException(status_code=400, detail="문항 수가 올바르지 않습니다.")
    return assessment


@router.post("/api/assessment-config")
async def custom_assessment_config(request: Request, body: AssessmentConfigBody):
    assessment = _tracker(request).comprehensive_assessment_config(
        body.total_questions, body.topic_distribution
    )
    if assessment is None:
        raise HTTPException(
            status_code=400,
            detail="영역별 문항 수의 합이 전체 문항 수와 다르거나 알 수 없는 영역이 있습니다.",
        )
    return assessment
