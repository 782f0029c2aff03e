"""
题目模型（题库只读视图）
马拉松调度只关心题目ID与正确答案，内容仅用于接口展示
"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, JSON

from .base import Base
from ..core.marathon_rules import utcnow


class Question(Base):
    """题目模型"""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, index=True)
    topic_id = Column(String(36), nullable=False, index=True)  # 知识点ID（外部实体，不做外键）
    question_type = Column(String(20), nullable=False, default="mcq")  # mcq | fill_blank
    content = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)  # ["选项1", "选项2", ...]
    correct_answer_index = Column(Integer, nullable=False)  # 正确选项下标，从0开始
    explanation = Column(Text, nullable=True)
    difficulty = Column(Integer, default=2, nullable=True)  # 1-5
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Question(id='{self.id}' topic='{self.topic_id}' content='{self.content[:30]}...')>"
