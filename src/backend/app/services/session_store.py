"""
马拉松会话存储
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models import MarathonSession


class SessionStore:
    """会话存储（不负责提交事务）"""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, session: MarathonSession) -> MarathonSession:
        self.db.add(session)
        self.db.flush()
        return session

    def get(self, session_id: str, user_id: Optional[str] = None) -> Optional[MarathonSession]:
        """获取会话；提供 user_id 时只返回该用户自己的会话"""
        query = self.db.query(MarathonSession).filter(MarathonSession.id == session_id)
        if user_id is not None:
            query = query.filter(MarathonSession.user_id == user_id)
        return query.first()

    def update_last_question(self, session_id: str, question_id: str) -> None:
        self.db.query(MarathonSession).filter(
            MarathonSession.id == session_id
        ).update(
            {MarathonSession.last_question_id: question_id},
            synchronize_session=False
        )

    def increment_aggregates(self, session_id: str, answered: int, correct: int, mastered: int) -> None:
        """聚合计数在数据库端自增，避免并发提交互相覆盖"""
        self.db.query(MarathonSession).filter(
            MarathonSession.id == session_id
        ).update(
            {
                MarathonSession.questions_answered: MarathonSession.questions_answered + answered,
                MarathonSession.correct_answers: MarathonSession.correct_answers + correct,
                MarathonSession.questions_mastered: MarathonSession.questions_mastered + mastered,
            },
            synchronize_session=False
        )

    def _finish(self, session_id: str, status: str, now: datetime) -> bool:
        # 只有 active 状态可以结束
        updated = self.db.query(MarathonSession).filter(
            MarathonSession.id == session_id,
            MarathonSession.status == "active"
        ).update(
            {
                MarathonSession.status: status,
                MarathonSession.completed_at: now,
            },
            synchronize_session=False
        )
        return bool(updated)

    def mark_exited(self, session_id: str, now: datetime) -> bool:
        """
        标记会话为已退出

        Returns:
            bool: 是否发生了状态变化（非 active 会话返回 False）
        """
        return self._finish(session_id, "exited", now)

    def mark_completed(self, session_id: str, now: datetime) -> bool:
        """标记会话为已完成（所有题目均已掌握）"""
        return self._finish(session_id, "completed", now)

    def list_by_user(self, user_id: str, limit: int = 20) -> List[MarathonSession]:
        return self.db.query(MarathonSession).filter(
            MarathonSession.user_id == user_id
        ).order_by(MarathonSession.started_at.desc()).limit(limit).all()
