"""
马拉松刷题配置模块

配置优先级：环境变量 > 默认值
"""

import os
from dataclasses import dataclass


@dataclass
class MarathonConfig:
    """
    马拉松调度配置

    Attributes:
        top_k: 每次取优先级最靠前的候选题数量，从中随机抽取一道
        retry_delay_seconds: 答错后再次出现前的冷却时间（秒）
        wrong_answer_penalty: 答错后优先级增加的数值（越大越靠后）
        history_limit: 历史会话列表默认返回条数
    """
    top_k: int = 10
    retry_delay_seconds: int = 45
    wrong_answer_penalty: int = 5
    history_limit: int = 20

    def validate(self) -> None:
        """检查配置是否有效"""
        if self.top_k < 1:
            raise ValueError("MARATHON_TOP_K 必须大于 0")
        if self.retry_delay_seconds < 0:
            raise ValueError("MARATHON_RETRY_DELAY_SECONDS 不能为负数")
        if self.wrong_answer_penalty < 0:
            raise ValueError("MARATHON_WRONG_ANSWER_PENALTY 不能为负数")
        if self.history_limit < 1:
            raise ValueError("MARATHON_HISTORY_LIMIT 必须大于 0")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} 必须是整数，当前值: {raw!r}")


def get_marathon_config() -> MarathonConfig:
    """
    从环境变量获取马拉松调度配置

    环境变量：
        MARATHON_TOP_K: 候选题数量
        MARATHON_RETRY_DELAY_SECONDS: 答错冷却时间
        MARATHON_WRONG_ANSWER_PENALTY: 答错优先级惩罚
        MARATHON_HISTORY_LIMIT: 历史列表条数

    Returns:
        MarathonConfig 配置对象

    Raises:
        ValueError: 当配置值不合法时
    """
    config = MarathonConfig(
        top_k=_int_env("MARATHON_TOP_K", 10),
        retry_delay_seconds=_int_env("MARATHON_RETRY_DELAY_SECONDS", 45),
        wrong_answer_penalty=_int_env("MARATHON_WRONG_ANSWER_PENALTY", 5),
        history_limit=_int_env("MARATHON_HISTORY_LIMIT", 20),
    )
    config.validate()
    return config
