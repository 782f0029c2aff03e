"""
Pytest 配置和通用 Fixtures

提供内存 SQLite 数据库、可控时钟和题库数据的 fixtures
"""
import random
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import MarathonConfig
from app.core.database import enable_sqlite_foreign_keys
from app.models import Base, Question
from app.services.marathon_service import MarathonService


# ==================== 数据库 ====================

@pytest.fixture
def engine():
    """内存 SQLite 引擎（同一连接，保证多线程下数据可见）"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """创建测试数据库会话"""
    session = session_factory()
    yield session
    session.close()


# ==================== 时钟与随机数 ====================

class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, 8, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ScriptedRandom(random.Random):
    """
    可预测的随机数：
    - shuffle 按给定顺序排列
    - choice 总是取第一个（即优先级最小的候选）
    """

    def __init__(self, order: Optional[List[str]] = None):
        super().__init__(0)
        self.order = order

    def shuffle(self, x):
        if self.order is not None:
            x.sort(key=self.order.index)

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def clock():
    return FakeClock()


# ==================== 题库数据 ====================

@pytest.fixture
def add_questions(db) -> Callable[..., List[str]]:
    """
    向题库添加题目，返回题目ID列表

    用法: add_questions("topic-1", 3, correct_index=1)
    """

    def _add(
        topic_id: str,
        count: int,
        correct_index: int = 0,
        is_active: bool = True,
        ids: Optional[List[str]] = None
    ) -> List[str]:
        question_ids = ids or [str(uuid.uuid4()) for _ in range(count)]
        for i, question_id in enumerate(question_ids):
            db.add(Question(
                id=question_id,
                topic_id=topic_id,
                question_type="mcq",
                content=f"{topic_id} 第 {i + 1} 题",
                options=["选项A", "选项B", "选项C", "选项D"],
                correct_answer_index=correct_index,
                explanation=f"{topic_id} 第 {i + 1} 题解析",
                difficulty=2,
                is_active=is_active,
            ))
        db.commit()
        return question_ids

    return _add


@pytest.fixture
def config():
    return MarathonConfig()


@pytest.fixture
def service(db, clock, config):
    """使用固定种子和可控时钟的马拉松服务"""
    return MarathonService(db, config=config, clock=clock, rng=random.Random(42))


@pytest.fixture
def make_service(db, clock, config):
    """自定义随机数的马拉松服务工厂"""

    def _make(rng: Optional[random.Random] = None) -> MarathonService:
        return MarathonService(db, config=config, clock=clock, rng=rng or random.Random(42))

    return _make
