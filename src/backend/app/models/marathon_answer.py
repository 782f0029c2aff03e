"""
马拉松答题记录模型
每次作答新增一条记录，永不更新
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base
from ..core.marathon_rules import utcnow


class MarathonAnswer(Base):
    """
    马拉松答题记录

    - attempt_number: 同一会话同一题的第几次作答，从1开始严格递增
    - submission_id: 客户端提供的幂等键（可选），重复提交直接返回已有结果
    """
    __tablename__ = "marathon_answers"
    __table_args__ = (
        UniqueConstraint("session_id", "question_id", "attempt_number", name="uq_marathon_answer_attempt"),
        UniqueConstraint("session_id", "submission_id", name="uq_marathon_answer_submission"),
    )

    id = Column(String(36), primary_key=True)
    session_id = Column(
        String(36),
        ForeignKey("marathon_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(String(36), nullable=False, index=True)
    selected_option = Column(Integer, nullable=True)  # 为空表示跳过
    is_correct = Column(Boolean, default=False, nullable=False)
    is_skipped = Column(Boolean, default=False, nullable=False)
    time_taken_seconds = Column(Float, nullable=False, default=0)
    attempt_number = Column(Integer, default=1, nullable=False)
    submission_id = Column(String(64), nullable=True)
    answered_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    session = relationship("MarathonSession", back_populates="answers")

    def __repr__(self):
        return (
            f"<MarathonAnswer(id='{self.id}' session='{self.session_id}' qid='{self.question_id}' "
            f"attempt={self.attempt_number} correct={self.is_correct})>"
        )
