"""
马拉松题目队列存储
负责队列项的批量写入、可出题查询和原子更新
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.marathon_rules import AnswerTransition
from app.models import MarathonQueueItem


class QueueStore:
    """队列项存储（不负责提交事务）"""

    def __init__(self, db: Session):
        self.db = db

    def insert_many(self, items: List[MarathonQueueItem]) -> None:
        """批量写入队列项"""
        self.db.add_all(items)
        self.db.flush()

    def _eligible_query(self, session_id: str, now: datetime):
        # 可出题：未掌握，且冷却时间为空或已过
        return self.db.query(MarathonQueueItem).filter(
            MarathonQueueItem.session_id == session_id,
            MarathonQueueItem.is_mastered == False,
            or_(
                MarathonQueueItem.next_eligible_at == None,
                MarathonQueueItem.next_eligible_at <= now
            )
        )

    def find_eligible(
        self,
        session_id: str,
        exclude_question_id: Optional[str],
        limit: int,
        now: datetime
    ) -> List[MarathonQueueItem]:
        """
        按优先级升序返回前 limit 个可出题的队列项

        Args:
            session_id: 会话ID
            exclude_question_id: 需要排除的题目ID（上一道题），为空则不排除
            limit: 返回数量上限
            now: 当前时间

        Returns:
            List[MarathonQueueItem]
        """
        query = self._eligible_query(session_id, now)
        if exclude_question_id:
            query = query.filter(MarathonQueueItem.question_id != exclude_question_id)

        return query.order_by(
            MarathonQueueItem.priority.asc(),
            MarathonQueueItem.id.asc()
        ).limit(limit).all()

    def find_eligible_one(self, session_id: str, question_id: str, now: datetime) -> Optional[MarathonQueueItem]:
        """指定题目当前是否可出，可出则返回队列项"""
        return self._eligible_query(session_id, now).filter(
            MarathonQueueItem.question_id == question_id
        ).first()

    def find_one(self, session_id: str, question_id: str) -> Optional[MarathonQueueItem]:
        return self.db.query(MarathonQueueItem).filter(
            MarathonQueueItem.session_id == session_id,
            MarathonQueueItem.question_id == question_id
        ).first()

    def get(self, item_id: str) -> Optional[MarathonQueueItem]:
        return self.db.query(MarathonQueueItem).filter(MarathonQueueItem.id == item_id).first()

    def list_by_session(self, session_id: str) -> List[MarathonQueueItem]:
        return self.db.query(MarathonQueueItem).filter(
            MarathonQueueItem.session_id == session_id
        ).order_by(MarathonQueueItem.priority.asc()).all()

    def count_unmastered(self, session_id: str) -> int:
        return self.db.query(MarathonQueueItem).filter(
            MarathonQueueItem.session_id == session_id,
            MarathonQueueItem.is_mastered == False
        ).count()

    def mark_shown(self, item_id: str, now: datetime) -> int:
        """
        出题计数 + 1（单条 UPDATE，原子自增）

        Returns:
            int: 更新后的 times_shown
        """
        self.db.query(MarathonQueueItem).filter(
            MarathonQueueItem.id == item_id
        ).update(
            {
                MarathonQueueItem.times_shown: MarathonQueueItem.times_shown + 1,
                MarathonQueueItem.last_shown_at: now,
            },
            synchronize_session=False
        )
        return self.db.query(MarathonQueueItem.times_shown).filter(
            MarathonQueueItem.id == item_id
        ).scalar()

    def apply_answer(self, item_id: str, transition: AnswerTransition, time_taken_seconds: float) -> bool:
        """
        按作答结果更新队列项

        计数与掌握标记在同一条 UPDATE 中完成，不做"先读后写"。
        答对时用 is_mastered == False 作为条件，命中行数即"本次是否新掌握"；
        已掌握的题目再次答对同样恢复最低优先级并清除冷却，掌握状态不会回退。

        Returns:
            bool: 本次作答是否使该题从未掌握变为已掌握
        """
        query = self.db.query(MarathonQueueItem).filter(MarathonQueueItem.id == item_id)

        if transition.is_correct:
            became_mastered = query.filter(
                MarathonQueueItem.is_mastered == False
            ).update(
                {
                    MarathonQueueItem.times_correct: MarathonQueueItem.times_correct + 1,
                    MarathonQueueItem.is_mastered: True,
                    MarathonQueueItem.priority: transition.priority,
                    MarathonQueueItem.next_eligible_at: None,
                    MarathonQueueItem.avg_time_seconds: time_taken_seconds,
                },
                synchronize_session=False
            )
            if became_mastered:
                return True

            query.update(
                {
                    MarathonQueueItem.times_correct: MarathonQueueItem.times_correct + 1,
                    MarathonQueueItem.priority: transition.priority,
                    MarathonQueueItem.next_eligible_at: None,
                    MarathonQueueItem.avg_time_seconds: time_taken_seconds,
                },
                synchronize_session=False
            )
            return False

        query.update(
            {
                MarathonQueueItem.times_wrong: MarathonQueueItem.times_wrong + 1,
                MarathonQueueItem.times_correct: 0,
                MarathonQueueItem.next_eligible_at: transition.next_eligible_at,
                MarathonQueueItem.priority: MarathonQueueItem.priority + transition.priority_delta,
                MarathonQueueItem.avg_time_seconds: time_taken_seconds,
            },
            synchronize_session=False
        )
        return False
