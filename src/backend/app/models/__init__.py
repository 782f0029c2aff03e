"""
Models package
Export all database models
"""

from .base import Base
from .question import Question
from .marathon_session import MarathonSession, MarathonQueueItem
from .marathon_answer import MarathonAnswer

__all__ = [
    "Base",
    "Question",
    "MarathonSession",
    "MarathonQueueItem",
    "MarathonAnswer",
]


def init_db(bind=None):
    """初始化数据库"""
    if bind is None:
        from ..core.database import engine
        bind = engine

    # 创建所有表
    Base.metadata.create_all(bind=bind)


def drop_all(bind=None):
    """删除所有表（仅开发测试用）"""
    if bind is None:
        from ..core.database import engine
        bind = engine

    # 删除所有表
    Base.metadata.drop_all(bind=bind)
