"""
Agent 会话

记录一次请求的规划状态：原始请求、思考内容、执行步骤。
每个请求创建一个新会话，由调用方显式传递。

使用示例:
    session = AgentSession()
    session.start("sum column B")
    session.set_steps(["读取数据", "写入公式"])
    session.begin_execution()
    session.update_step_result(0, "B2:B6")
    session.complete_step(0)
    session.finish()
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class AgentStatus(str, Enum):
    """会话状态"""

    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETE = "complete"


@dataclass
class AgentStep:
    """执行步骤"""

    description: str
    completed: bool = False
    result: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"description": self.description, "completed": self.completed}
        if self.result is not None:
            data["result"] = self.result
        return data


@dataclass
class AgentSession:
    """单次请求的 Agent 状态"""

    original_query: str = ""
    status: AgentStatus = AgentStatus.IDLE
    thinking: str = ""
    steps: List[AgentStep] = field(default_factory=list)

    def _step(self, index: int) -> Optional[AgentStep]:
        """取出步骤，索引越界时返回 None"""
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None

    def start(self, query: str):
        """开始规划新的请求（清空之前的状态）"""
        self.reset()
        self.original_query = query
        self.status = AgentStatus.PLANNING

    def update_thinking(self, thinking: str):
        """更新思考内容"""
        self.thinking = thinking

    def set_steps(self, steps: List[Union[str, AgentStep]]):
        """设置执行步骤（字符串会转换为未完成的步骤）"""
        self.steps = [s if isinstance(s, AgentStep) else AgentStep(description=s) for s in steps]

    def begin_execution(self):
        """进入执行阶段"""
        self.status = AgentStatus.EXECUTING

    def update_step_result(self, index: int, result: str):
        """记录步骤结果（索引越界时忽略）"""
        step = self._step(index)
        if step:
            step.result = result

    def complete_step(self, index: int):
        """标记步骤完成（索引越界时忽略）"""
        step = self._step(index)
        if step:
            step.completed = True

    def finish(self):
        """结束会话"""
        self.status = AgentStatus.COMPLETE

    def reset(self):
        """恢复初始状态"""
        self.original_query = ""
        self.status = AgentStatus.IDLE
        self.thinking = ""
        self.steps = []

    @property
    def is_complete(self) -> bool:
        return self.status == AgentStatus.COMPLETE

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "originalQuery": self.original_query,
            "status": self.status.value,
            "thinking": self.thinking,
            "steps": [step.to_dict() for step in self.steps],
        }
