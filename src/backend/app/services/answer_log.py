"""
马拉松答题日志（只追加，不修改）
"""
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import MarathonAnswer


class AnswerLog:
    """答题日志"""

    def __init__(self, db: Session):
        self.db = db

    def next_attempt_number(self, session_id: str, question_id: str) -> int:
        """同一会话同一题的下一次作答序号，从1开始"""
        current = self.db.query(func.max(MarathonAnswer.attempt_number)).filter(
            MarathonAnswer.session_id == session_id,
            MarathonAnswer.question_id == question_id
        ).scalar()
        return (current or 0) + 1

    def append(self, record: MarathonAnswer) -> MarathonAnswer:
        self.db.add(record)
        self.db.flush()
        return record

    def list_by_session(self, session_id: str) -> List[MarathonAnswer]:
        return self.db.query(MarathonAnswer).filter(
            MarathonAnswer.session_id == session_id
        ).order_by(MarathonAnswer.answered_at.asc(), MarathonAnswer.attempt_number.asc()).all()

    def find_by_submission(self, session_id: str, submission_id: str) -> Optional[MarathonAnswer]:
        return self.db.query(MarathonAnswer).filter(
            MarathonAnswer.session_id == session_id,
            MarathonAnswer.submission_id == submission_id
        ).first()
