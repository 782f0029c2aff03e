"""
马拉松刷题调度规则
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """当前 UTC 时间（naive，与数据库 DateTime 列保持一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class AnswerTransition:
    """
    一次作答对队列项的状态变更

    答对：times_correct + 1，标记掌握，优先级置为 MASTERED_PRIORITY，清除冷却
    答错：times_wrong + 1，times_correct 清零，设置冷却截止时间，优先级 + penalty
    """
    is_correct: bool
    next_eligible_at: Optional[datetime]
    priority: Optional[int] = None
    priority_delta: int = 0


class MarathonRules:
    """马拉松队列调度规则"""

    # 已掌握题目的优先级，保证排在所有未掌握题目之后
    MASTERED_PRIORITY = 1_000_000_000

    TOP_K = 10
    RETRY_DELAY_SECONDS = 45
    WRONG_ANSWER_PENALTY = 5

    @classmethod
    def calculate_transition(
        cls,
        is_correct: bool,
        now: datetime,
        retry_delay_seconds: int = RETRY_DELAY_SECONDS,
        wrong_answer_penalty: int = WRONG_ANSWER_PENALTY,
    ) -> AnswerTransition:
        """
        计算作答后的队列项变更

        掌握的定义是"本会话内第一次答对"，不要求连续答对。
        答错后固定冷却一段时间（近似"隔几道题再出现"），不做计数。

        Args:
            is_correct: 是否答对
            now: 当前时间
            retry_delay_seconds: 答错冷却时间（秒）
            wrong_answer_penalty: 答错优先级惩罚

        Returns:
            AnswerTransition
        """
        if is_correct:
            return AnswerTransition(
                is_correct=True,
                next_eligible_at=None,
                priority=cls.MASTERED_PRIORITY,
            )

        return AnswerTransition(
            is_correct=False,
            next_eligible_at=now + timedelta(seconds=retry_delay_seconds),
            priority_delta=wrong_answer_penalty,
        )

    @staticmethod
    def accuracy(correct_attempts: int, total_attempts: int) -> int:
        """正确率百分比，四舍五入（0.5 向上），无作答时为 0"""
        if total_attempts <= 0:
            return 0
        return int(math.floor(100 * correct_attempts / total_attempts + 0.5))
