"""
马拉松刷题异常定义

分类：
- InvalidInputError: 输入不合法（写库前即返回）
- ExhaustedError: 所选知识点下没有可用题目（InvalidInputError 的子类）
- NotFoundError: 会话 / 队列项 / 题目不存在
- StorageError: 底层存储失败（事务已回滚，调用方可整体重试）

"已完成"不是异常，而是 NextQuestion 的正常返回信号。
"""


class MarathonError(Exception):
    """马拉松模块异常基类"""


class InvalidInputError(MarathonError, ValueError):
    """输入不合法"""


class NoTopicsSelectedError(InvalidInputError):
    """未选择任何知识点"""

    def __init__(self):
        super().__init__("未选择任何知识点")


class ExhaustedError(InvalidInputError):
    """题库耗尽"""


class NoQuestionsAvailableError(ExhaustedError):
    """所选知识点下没有可用题目"""

    def __init__(self, topic_ids=None):
        self.topic_ids = list(topic_ids or [])
        super().__init__("所选知识点下没有可用题目")


class SubmissionConflictError(InvalidInputError):
    """幂等键已用于另一道题的提交"""

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(f"提交编号 {submission_id} 已用于其他题目")


class NotFoundError(MarathonError, LookupError):
    """资源不存在"""


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"会话 {session_id} 不存在")


class QueueItemNotFoundError(NotFoundError):
    def __init__(self, queue_item_id: str):
        self.queue_item_id = queue_item_id
        super().__init__(f"队列项 {queue_item_id} 不存在")


class QuestionNotFoundError(NotFoundError):
    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"题目 {question_id} 不存在")


class StorageError(MarathonError):
    """存储层失败（不透明，可重试）"""
