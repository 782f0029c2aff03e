"""
马拉松刷题调度服务
把所选知识点的题目变成一个按答题对错自动调整顺序的个人队列

核心规则：
- 开始会话时随机打乱题目，打乱后的下标即初始优先级
- 每次从优先级最靠前的 K 道可出题中随机抽一道，且不与上一道题重复
- 只剩上一道题可出时允许重复出（避免卡死）
- 答对一次即掌握，不再出现；答错则冷却 45 秒并降低优先级
- 没有任何可出题时返回"已完成"信号
"""
import logging
import random
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import MarathonConfig, get_marathon_config
from app.core.exceptions import (
    NoQuestionsAvailableError,
    NoTopicsSelectedError,
    QueueItemNotFoundError,
    SessionNotFoundError,
    StorageError,
    SubmissionConflictError,
)
from app.core.marathon_rules import MarathonRules, utcnow
from app.models import MarathonAnswer, MarathonQueueItem, MarathonSession
from app.services.answer_log import AnswerLog
from app.services.question_pool import QuestionPool
from app.services.queue_store import QueueStore
from app.services.session_store import SessionStore


logger = logging.getLogger(__name__)


@dataclass
class NextQuestionResult:
    """
    取题结果

    completed=True 表示"当前没有可出的题"，可能是全部掌握，
    也可能是剩余题目都在冷却中；all_mastered 用于区分这两种情况。
    """
    completed: bool
    queue_item_id: Optional[str] = None
    question_id: Optional[str] = None
    times_shown: int = 0
    all_mastered: bool = False


@dataclass
class AnswerResult:
    """作答结果"""
    is_correct: bool
    correct_answer: int
    explanation: Optional[str]
    is_mastered: bool
    will_reappear: bool
    attempt_number: int


def session_to_dict(session: MarathonSession) -> dict:
    """会话转字典（接口返回用）"""
    return {
        "id": session.id,
        "user_id": session.user_id,
        "exam_subject_id": session.exam_subject_id,
        "selected_topic_ids": list(session.selected_topic_ids or []),
        "status": session.status,
        "total_questions": session.total_questions,
        "questions_answered": session.questions_answered,
        "correct_answers": session.correct_answers,
        "questions_mastered": session.questions_mastered,
        "last_question_id": session.last_question_id,
        "started_at": session.started_at.isoformat() if session.started_at else None,
        "completed_at": session.completed_at.isoformat() if session.completed_at else None,
    }


class MarathonService:
    """马拉松刷题服务"""

    def __init__(
        self,
        db: Session,
        question_pool: Optional[QuestionPool] = None,
        config: Optional[MarathonConfig] = None,
        clock: Callable = utcnow,
        rng: Optional[random.Random] = None
    ):
        self.db = db
        self.question_pool = question_pool or QuestionPool(db)
        self.config = config or get_marathon_config()
        self.clock = clock
        self.rng = rng or random.Random()

        self.sessions = SessionStore(db)
        self.queue = QueueStore(db)
        self.answers = AnswerLog(db)

    @contextmanager
    def _transaction(self, action: str):
        """出错时回滚；数据库异常统一包装成 StorageError"""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{action}失败，已回滚: {e}")
            raise StorageError(f"{action}失败，请重试") from e
        except Exception:
            self.db.rollback()
            raise

    def _get_session(self, session_id: str, user_id: Optional[str] = None) -> MarathonSession:
        session = self.sessions.get(session_id, user_id)
        if not session:
            raise SessionNotFoundError(session_id)
        return session

    def start_session(
        self,
        user_id: str,
        topic_ids: List[str],
        exam_subject_id: Optional[str] = None
    ) -> MarathonSession:
        """
        开始一个马拉松会话

        会话和题目队列在同一个事务中写入，任一失败则全部回滚。

        Args:
            user_id: 用户ID
            topic_ids: 所选知识点ID列表（不能为空）
            exam_subject_id: 考试科目ID（可选，调度不使用）

        Returns:
            MarathonSession: 新建的会话

        Raises:
            NoTopicsSelectedError: 未选择知识点
            NoQuestionsAvailableError: 所选知识点下没有启用的题目
            StorageError: 写库失败
        """
        if not topic_ids:
            logger.warning(f"用户 {user_id} 开始马拉松时未选择知识点")
            raise NoTopicsSelectedError()

        with self._transaction("获取题目"):
            question_ids = self.question_pool.list_active_question_ids(topic_ids)

        if not question_ids:
            logger.warning(f"用户 {user_id} 所选知识点没有可用题目: {topic_ids}")
            raise NoQuestionsAvailableError(topic_ids)

        # 随机打乱，打乱后的位置作为初始优先级
        order = list(question_ids)
        self.rng.shuffle(order)

        with self._transaction("创建马拉松会话"):
            session = self.sessions.insert(MarathonSession(
                id=str(uuid.uuid4()),
                user_id=user_id,
                exam_subject_id=exam_subject_id,
                selected_topic_ids=list(topic_ids),
                status="active",
                total_questions=len(order),
                questions_answered=0,
                correct_answers=0,
                questions_mastered=0,
                last_question_id=None,
                started_at=self.clock(),
            ))

            self.queue.insert_many([
                MarathonQueueItem(
                    id=str(uuid.uuid4()),
                    session_id=session.id,
                    question_id=question_id,
                    priority=index,
                    times_shown=0,
                    times_correct=0,
                    times_wrong=0,
                    is_mastered=False,
                    next_eligible_at=None,
                )
                for index, question_id in enumerate(order)
            ])

            self.db.commit()
            self.db.refresh(session)

        logger.info(f"用户 {user_id} 开始马拉松会话 {session.id}，共 {len(order)} 题")
        return session

    def next_question(self, session_id: str) -> NextQuestionResult:
        """
        获取下一道题

        1. 在未掌握、不在冷却期、且不是上一道题的队列项中，按优先级取前 K 个
        2. 有候选则随机抽一道
        3. 没有候选时，若上一道题本身仍可出，则再出一次
        4. 仍然没有则返回 completed

        Raises:
            SessionNotFoundError: 会话不存在
            StorageError: 读写失败
        """
        now = self.clock()

        with self._transaction("获取下一题"):
            session = self._get_session(session_id)
            last_question_id = session.last_question_id

            candidates = self.queue.find_eligible(
                session_id, last_question_id, self.config.top_k, now
            )

            item = None
            if candidates:
                item = self.rng.choice(candidates)
            elif last_question_id:
                item = self.queue.find_eligible_one(session_id, last_question_id, now)

            if item is None:
                all_mastered = self.queue.count_unmastered(session_id) == 0
                if all_mastered and self.sessions.mark_completed(session_id, now):
                    logger.info(f"马拉松会话 {session_id} 所有题目已掌握")
                self.db.commit()
                return NextQuestionResult(completed=True, all_mastered=all_mastered)

            queue_item_id = item.id
            question_id = item.question_id
            times_shown = self.queue.mark_shown(queue_item_id, now)
            self.sessions.update_last_question(session_id, question_id)
            self.db.commit()

        return NextQuestionResult(
            completed=False,
            queue_item_id=queue_item_id,
            question_id=question_id,
            times_shown=times_shown,
        )

    def submit_answer(
        self,
        session_id: str,
        queue_item_id: str,
        question_id: str,
        selected_option: Optional[int],
        time_taken_seconds: float,
        submission_id: Optional[str] = None
    ) -> AnswerResult:
        """
        提交答案

        在同一事务内依次：更新队列项、追加答题记录、累加会话计数。
        selected_option 为空视为跳过，按答错处理。

        Args:
            session_id: 会话ID
            queue_item_id: 队列项ID（取题时返回）
            question_id: 题目ID
            selected_option: 选中的选项下标
            time_taken_seconds: 作答耗时（秒）
            submission_id: 客户端幂等键（可选），重复提交直接返回首次结果

        Returns:
            AnswerResult

        Raises:
            SessionNotFoundError / QueueItemNotFoundError / QuestionNotFoundError
            SubmissionConflictError: 幂等键已用于其他题目
            StorageError: 写库失败（已回滚）
        """
        now = self.clock()

        with self._transaction("提交答案"):
            self._get_session(session_id)

            if submission_id:
                existing = self.answers.find_by_submission(session_id, submission_id)
                if existing:
                    stored_item = self.queue.find_one(session_id, existing.question_id)
                    if existing.question_id != question_id or stored_item.id != queue_item_id:
                        logger.warning(f"提交编号 {submission_id} 与已有记录的题目不一致")
                        raise SubmissionConflictError(submission_id)
                    logger.info(f"重复提交 {submission_id}，返回已有结果")
                    return self._replay(existing)

            item = self.queue.get(queue_item_id)
            if not item or item.session_id != session_id or item.question_id != question_id:
                raise QueueItemNotFoundError(queue_item_id)

            answer = self.question_pool.get_correct_answer(question_id)
            is_skipped = selected_option is None
            is_correct = not is_skipped and selected_option == answer.correct_option_index

            transition = MarathonRules.calculate_transition(
                is_correct,
                now,
                retry_delay_seconds=self.config.retry_delay_seconds,
                wrong_answer_penalty=self.config.wrong_answer_penalty,
            )
            became_mastered = self.queue.apply_answer(item.id, transition, time_taken_seconds)

            attempt_number = self.answers.next_attempt_number(session_id, question_id)
            self.answers.append(MarathonAnswer(
                id=str(uuid.uuid4()),
                session_id=session_id,
                question_id=question_id,
                selected_option=selected_option,
                is_correct=is_correct,
                is_skipped=is_skipped,
                time_taken_seconds=time_taken_seconds,
                attempt_number=attempt_number,
                submission_id=submission_id,
                answered_at=now,
            ))

            self.sessions.increment_aggregates(
                session_id,
                answered=1,
                correct=1 if is_correct else 0,
                mastered=1 if became_mastered else 0,
            )
            self.db.commit()

            self.db.refresh(item)
            is_mastered = item.is_mastered

        return AnswerResult(
            is_correct=is_correct,
            correct_answer=answer.correct_option_index,
            explanation=answer.explanation,
            is_mastered=is_mastered,
            will_reappear=not is_correct,
            attempt_number=attempt_number,
        )

    def _replay(self, record: MarathonAnswer) -> AnswerResult:
        answer = self.question_pool.get_correct_answer(record.question_id)
        item = self.queue.find_one(record.session_id, record.question_id)
        return AnswerResult(
            is_correct=record.is_correct,
            correct_answer=answer.correct_option_index,
            explanation=answer.explanation,
            is_mastered=bool(item and item.is_mastered),
            will_reappear=not record.is_correct,
            attempt_number=record.attempt_number,
        )

    def exit_session(self, session_id: str, user_id: Optional[str] = None) -> MarathonSession:
        """
        提前退出会话（进度保留）

        已经不是 active 的会话再次退出不做任何修改，直接返回当前状态。
        """
        with self._transaction("退出会话"):
            session = self._get_session(session_id, user_id)
            changed = self.sessions.mark_exited(session_id, self.clock())
            self.db.commit()
            self.db.refresh(session)

        if changed:
            logger.info(f"马拉松会话 {session_id} 已退出")
        return session

    def get_session(self, session_id: str, user_id: Optional[str] = None) -> MarathonSession:
        with self._transaction("获取会话"):
            return self._get_session(session_id, user_id)

    def get_summary(self, session_id: str, user_id: Optional[str] = None) -> dict:
        """
        会话总结

        Returns:
            dict: 会话字段 + total_attempts、correct_attempts、accuracy（百分比整数）、
                  avg_time_seconds（按作答次数的简单平均）
        """
        with self._transaction("获取会话总结"):
            session = self._get_session(session_id, user_id)
            records = self.answers.list_by_session(session_id)

            total_attempts = len(records)
            correct_attempts = sum(1 for r in records if r.is_correct)
            avg_time = (
                round(sum(r.time_taken_seconds or 0 for r in records) / total_attempts, 2)
                if total_attempts > 0 else 0
            )

            summary = session_to_dict(session)

        summary.update({
            "total_attempts": total_attempts,
            "correct_attempts": correct_attempts,
            "accuracy": MarathonRules.accuracy(correct_attempts, total_attempts),
            "avg_time_seconds": avg_time,
        })
        return summary

    def list_history(self, user_id: str, limit: Optional[int] = None) -> List[MarathonSession]:
        """用户的马拉松历史，最近开始的在前"""
        with self._transaction("获取历史会话"):
            return self.sessions.list_by_user(
                user_id, self.config.history_limit if limit is None else limit
            )
