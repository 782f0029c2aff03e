"""
马拉松调度规则与配置测试
"""
from datetime import datetime, timedelta

import pytest

from app.core.config import MarathonConfig, get_marathon_config
from app.core.marathon_rules import MarathonRules


NOW = datetime(2026, 1, 1, 8, 0, 0)


class TestAnswerTransition:

    def test_correct_answer(self):
        transition = MarathonRules.calculate_transition(True, NOW)

        assert transition.is_correct is True
        assert transition.next_eligible_at is None
        assert transition.priority == MarathonRules.MASTERED_PRIORITY
        assert transition.priority_delta == 0

    def test_wrong_answer(self):
        transition = MarathonRules.calculate_transition(False, NOW)

        assert transition.is_correct is False
        assert transition.next_eligible_at == NOW + timedelta(seconds=45)
        assert transition.priority is None
        assert transition.priority_delta == 5

    def test_custom_delay_and_penalty(self):
        transition = MarathonRules.calculate_transition(
            False, NOW, retry_delay_seconds=90, wrong_answer_penalty=2
        )

        assert transition.next_eligible_at == NOW + timedelta(seconds=90)
        assert transition.priority_delta == 2


class TestAccuracy:

    @pytest.mark.parametrize("correct, total, expected", [
        (0, 0, 0),
        (0, 5, 0),
        (5, 5, 100),
        (2, 3, 67),
        (1, 3, 33),
        (1, 8, 13),
    ])
    def test_accuracy(self, correct, total, expected):
        assert MarathonRules.accuracy(correct, total) == expected


class TestMarathonConfig:

    def test_defaults(self, monkeypatch):
        for name in ("MARATHON_TOP_K", "MARATHON_RETRY_DELAY_SECONDS",
                     "MARATHON_WRONG_ANSWER_PENALTY", "MARATHON_HISTORY_LIMIT"):
            monkeypatch.delenv(name, raising=False)

        assert get_marathon_config() == MarathonConfig(
            top_k=10, retry_delay_seconds=45, wrong_answer_penalty=5, history_limit=20
        )

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("MARATHON_TOP_K", "3")
        monkeypatch.setenv("MARATHON_RETRY_DELAY_SECONDS", "120")
        monkeypatch.setenv("MARATHON_WRONG_ANSWER_PENALTY", "1")
        monkeypatch.setenv("MARATHON_HISTORY_LIMIT", "50")

        config = get_marathon_config()

        assert config.top_k == 3
        assert config.retry_delay_seconds == 120
        assert config.wrong_answer_penalty == 1
        assert config.history_limit == 50

    def test_non_integer_value(self, monkeypatch):
        monkeypatch.setenv("MARATHON_TOP_K", "ten")
        with pytest.raises(ValueError, match="MARATHON_TOP_K"):
            get_marathon_config()

    def test_invalid_top_k(self, monkeypatch):
        monkeypatch.setenv("MARATHON_TOP_K", "0")
        with pytest.raises(ValueError, match="MARATHON_TOP_K"):
            get_marathon_config()
