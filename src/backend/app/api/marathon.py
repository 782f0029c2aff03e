"""
马拉松刷题API路由
自适应出题：答错的题稍后再出，答对即掌握
"""
from dataclasses import asdict
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import InvalidInputError, NotFoundError, StorageError
from app.services.marathon_service import MarathonService, session_to_dict


router = APIRouter(prefix="/marathon", tags=["马拉松刷题"])


# Schemas
class StartMarathonRequest(BaseModel):
    """开始马拉松请求"""
    topic_ids: List[str] = Field(default_factory=list)
    exam_subject_id: Optional[str] = None


class MarathonAnswerRequest(BaseModel):
    """马拉松答题请求"""
    session_id: str
    queue_id: str
    question_id: str
    selected_option: Optional[int] = None
    time_taken_seconds: float = Field(default=0, ge=0)
    submission_id: Optional[str] = None


class MarathonSessionResponse(BaseModel):
    """马拉松会话响应"""
    id: str
    user_id: str
    exam_subject_id: str | None
    selected_topic_ids: List[str]
    status: str
    total_questions: int
    questions_answered: int
    correct_answers: int
    questions_mastered: int
    last_question_id: str | None
    started_at: str | None
    completed_at: str | None


class MarathonSummaryResponse(MarathonSessionResponse):
    """会话总结响应"""
    total_attempts: int
    correct_attempts: int
    accuracy: int
    avg_time_seconds: float


class MarathonAnswerResponse(BaseModel):
    """答题结果响应"""
    is_correct: bool
    correct_answer: int
    explanation: str | None
    is_mastered: bool
    will_reappear: bool
    attempt_number: int


def get_marathon_service(db: Session = Depends(get_db)) -> MarathonService:
    """马拉松服务依赖注入"""
    return MarathonService(db)


def _raise_http_error(e: Exception):
    """领域异常转 HTTP 异常"""
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InvalidInputError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, StorageError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    raise e


# Endpoints
@router.post("/start", response_model=MarathonSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_marathon(
    request: StartMarathonRequest,
    user_id: str,
    service: MarathonService = Depends(get_marathon_service)
):
    """开始一个新的马拉松会话"""
    try:
        session = service.start_session(
            user_id=user_id,
            topic_ids=request.topic_ids,
            exam_subject_id=request.exam_subject_id
        )
    except (InvalidInputError, StorageError) as e:
        _raise_http_error(e)
    return MarathonSessionResponse(**session_to_dict(session))


@router.get("/session/{session_id}", response_model=MarathonSessionResponse)
async def get_marathon_session(
    session_id: str,
    user_id: str,
    service: MarathonService = Depends(get_marathon_service)
):
    """获取会话当前状态"""
    try:
        session = service.get_session(session_id, user_id)
    except (NotFoundError, StorageError) as e:
        _raise_http_error(e)
    return MarathonSessionResponse(**session_to_dict(session))


@router.get("/next-question", response_model=dict)
async def get_next_question(
    session_id: str,
    user_id: str,
    service: MarathonService = Depends(get_marathon_service)
):
    """
    获取下一道题

    没有可出的题时返回 {"completed": true, "all_mastered": ...}；
    all_mastered 为 false 表示剩余题目都在冷却中，稍后再取即可。
    """
    try:
        service.get_session(session_id, user_id)
        result = service.next_question(session_id)
        if result.completed:
            return {"completed": True, "all_mastered": result.all_mastered}
        question = service.question_pool.get_question(result.question_id)
    except (NotFoundError, StorageError) as e:
        _raise_http_error(e)

    return {
        "completed": False,
        "queue_id": result.queue_item_id,
        "question_id": result.question_id,
        "question": question.content,
        "question_type": question.question_type,
        "options": question.options,
        "difficulty": question.difficulty,
        "times_shown": result.times_shown,
    }


@router.post("/answer", response_model=MarathonAnswerResponse)
async def submit_marathon_answer(
    request: MarathonAnswerRequest,
    user_id: str,
    service: MarathonService = Depends(get_marathon_service)
):
    """提交答案（记录耗时和对错）"""
    try:
        service.get_session(request.session_id, user_id)
        result = service.submit_answer(
            session_id=request.session_id,
            queue_item_id=request.queue_id,
            question_id=request.question_id,
            selected_option=request.selected_option,
            time_taken_seconds=request.time_taken_seconds,
            submission_id=request.submission_id
        )
    except (NotFoundError, InvalidInputError, StorageError) as e:
        _raise_http_error(e)
    return MarathonAnswerResponse(**asdict(result))


@router.put("/session/{session_id}/exit", response_model=MarathonSessionResponse)
async def exit_marathon(
    session_id: str,
    user_id: str,
    service: MarathonService = Depends(get_marathon_service)
):
    """提前退出马拉松（保留进度）"""
    try:
        session = service.exit_session(session_id, user_id)
    except (NotFoundError, StorageError) as e:
        _raise_http_error(e)
    return MarathonSessionResponse(**session_to_dict(session))


@router.get("/session/{session_id}/summary", response_model=MarathonSummaryResponse)
async def get_marathon_summary(
    session_id: str,
    user_id: str,
    service: MarathonService = Depends(get_marathon_service)
):
    """获取会话总结"""
    try:
        summary = service.get_summary(session_id, user_id)
    except (NotFoundError, StorageError) as e:
        _raise_http_error(e)
    return MarathonSummaryResponse(**summary)


@router.get("/history", response_model=List[MarathonSessionResponse])
async def list_marathon_history(
    user_id: str,
    limit: Optional[int] = Query(None, ge=1),
    service: MarathonService = Depends(get_marathon_service)
):
    """列出用户的马拉松历史"""
    try:
        sessions = service.list_history(user_id, limit)
    except StorageError as e:
        _raise_http_error(e)
    return [MarathonSessionResponse(**session_to_dict(s)) for s in sessions]
