"""
题库访问服务
马拉松调度只通过这里读取题目ID和正确答案，不直接读取题目内容
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import QuestionNotFoundError
from app.models import Question


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrectAnswer:
    """题目的正确答案与解析"""
    correct_option_index: int
    explanation: Optional[str]


class QuestionPool:
    """题库访问器"""

    def __init__(self, db: Session):
        self.db = db

    def list_active_question_ids(self, topic_ids: Iterable[str]) -> List[str]:
        """
        获取所选知识点下所有启用题目的ID

        Args:
            topic_ids: 知识点ID列表

        Returns:
            List[str]: 题目ID列表（去重，顺序不保证）
        """
        topic_ids = list(topic_ids)
        if not topic_ids:
            return []

        rows = self.db.query(Question.id).filter(
            Question.topic_id.in_(topic_ids),
            Question.is_active == True
        ).all()
        return list(dict.fromkeys(row.id for row in rows))

    def get_correct_answer(self, question_id: str) -> CorrectAnswer:
        """
        获取题目的正确答案下标和解析

        Raises:
            QuestionNotFoundError: 题目不存在
        """
        question = self.get_question(question_id)
        return CorrectAnswer(
            correct_option_index=question.correct_answer_index,
            explanation=question.explanation,
        )

    def get_question(self, question_id: str) -> Question:
        question = self.db.query(Question).filter(Question.id == question_id).first()
        if not question:
            raise QuestionNotFoundError(question_id)
        return question

    def import_questions(self, questions_data: List[dict], update_existing: bool = False) -> dict:
        """
        批量导入题目

        每条题目需要 topic_id、content、correct_answer_index；
        带 id 且已存在的题目默认跳过，update_existing=True 时更新内容。

        Returns:
            dict: {"imported": int, "updated": int, "skipped": int, "errors": [str]}
        """
        imported = 0
        updated = 0
        skipped = 0
        errors = []

        for q_data in questions_data:
            required_fields = ['topic_id', 'content', 'correct_answer_index']
            missing_fields = [f for f in required_fields if f not in q_data]
            if missing_fields:
                errors.append(f"题目缺少必填字段: {', '.join(missing_fields)}")
                skipped += 1
                continue

            existing = None
            if q_data.get('id'):
                existing = self.db.query(Question).filter(Question.id == q_data['id']).first()

            if existing:
                if not update_existing:
                    skipped += 1
                    continue
                existing.topic_id = q_data['topic_id']
                existing.content = q_data['content']
                existing.options = q_data.get('options')
                existing.correct_answer_index = q_data['correct_answer_index']
                existing.explanation = q_data.get('explanation')
                existing.difficulty = q_data.get('difficulty', existing.difficulty)
                existing.is_active = q_data.get('is_active', existing.is_active)
                updated += 1
                continue

            self.db.add(Question(
                id=q_data.get('id') or str(uuid.uuid4()),
                topic_id=q_data['topic_id'],
                question_type=q_data.get('question_type', 'mcq'),
                content=q_data['content'],
                options=q_data.get('options'),
                correct_answer_index=q_data['correct_answer_index'],
                explanation=q_data.get('explanation'),
                difficulty=q_data.get('difficulty', 2),
                is_active=q_data.get('is_active', True),
            ))
            imported += 1

        self.db.commit()
        logger.info(f"题目导入完成: 新增 {imported}，更新 {updated}，跳过 {skipped}")

        return {
            "imported": imported,
            "updated": updated,
            "skipped": skipped,
            "errors": errors,
        }
