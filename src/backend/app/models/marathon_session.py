"""
马拉松会话模型
一个会话 = 一个用户在所选知识点上的一轮自适应刷题
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, ForeignKey, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base
from ..core.marathon_rules import utcnow


class MarathonSession(Base):
    """
    马拉松会话

    字段说明：
    - total_questions / questions_answered / correct_answers / questions_mastered: 会话聚合计数，只增不减
    - last_question_id: 最近一次出的题，仅用于避免连续重复出同一道题
    - status: active | exited | completed
    """
    __tablename__ = "marathon_sessions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    exam_subject_id = Column(String(36), nullable=True)  # 考试科目关联（对调度不透明）
    selected_topic_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(20), default="active", index=True)
    total_questions = Column(Integer, default=0, nullable=False)
    questions_answered = Column(Integer, default=0, nullable=False)
    correct_answers = Column(Integer, default=0, nullable=False)
    questions_mastered = Column(Integer, default=0, nullable=False)
    last_question_id = Column(String(36), nullable=True)
    started_at = Column(DateTime, default=utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)

    # 关系（队列随会话删除）
    queue_items = relationship(
        "MarathonQueueItem",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    answers = relationship(
        "MarathonAnswer",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<MarathonSession(id='{self.id}' user='{self.user_id}' status={self.status})>"


class MarathonQueueItem(Base):
    """会话内单题的调度记录"""
    __tablename__ = "marathon_question_queue"
    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_marathon_queue_session_question"),
    )

    id = Column(String(36), primary_key=True)
    session_id = Column(
        String(36),
        ForeignKey("marathon_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(String(36), nullable=False, index=True)
    priority = Column(Integer, default=0, nullable=False, index=True)  # 越小越先出
    times_shown = Column(Integer, default=0, nullable=False)
    times_correct = Column(Integer, default=0, nullable=False)
    times_wrong = Column(Integer, default=0, nullable=False)
    avg_time_seconds = Column(Float, nullable=True)  # 最近一次作答耗时（直接覆盖）
    is_mastered = Column(Boolean, default=False, nullable=False, index=True)
    next_eligible_at = Column(DateTime, nullable=True)  # 为空表示立即可出
    last_shown_at = Column(DateTime, nullable=True)

    session = relationship("MarathonSession", back_populates="queue_items")

    def __repr__(self):
        return (
            f"<MarathonQueueItem(id='{self.id}' qid='{self.question_id}' "
            f"priority={self.priority} mastered={self.is_mastered})>"
        )
