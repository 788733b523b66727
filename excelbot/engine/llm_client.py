"""LLM 客户端模块 - 负责与 OpenAI 兼容接口交互，生成表格操作"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from excelbot.core.config import settings
from excelbot.engine.extractor import extract_operations
from excelbot.engine.models import SpreadsheetDocument
from excelbot.engine.prompt import SYSTEM_PROMPT, build_operation_prompt

logger = logging.getLogger(__name__)


ERROR_REPLY = "Sorry, I encountered an error while processing your request. Please try a simpler query or check your connection."
EMPTY_REPLY = "No response generated"


@dataclass
class LLMResponse:
    """LLM 回复（失败时 is_error 为 True，text 为面向用户的提示）"""

    text: str
    is_error: bool = False
    operations: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def operation(self) -> Optional[Dict[str, Any]]:
        """第一个操作"""
        return self.operations[0] if self.operations else None


class LLMClient:
    """LLM 客户端类"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[OpenAI] = None,
    ):
        """
        初始化 LLM 客户端

        Args:
            api_key: OpenAI API Key
            base_url: OpenAI API Base URL
            model: 模型名称
            client: 已创建的 OpenAI 客户端（测试时注入）
        """
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.base_url = base_url or settings.OPENAI_BASE_URL
        self.model = model or settings.OPENAI_MODEL

        if client is not None:
            self.client = client
            return

        if not self.api_key:
            raise ValueError("未设置 OPENAI_API_KEY 环境变量")

        client_kwargs = {"api_key": self.api_key, "timeout": settings.LLM_TIMEOUT}
        if self.base_url:
            client_kwargs["base_url"] = self.base_url

        self.client = OpenAI(**client_kwargs)

    def _call_llm(self, system_prompt: str, user_message: str) -> str:
        """
        调用 LLM

        Args:
            system_prompt: 系统提示词
            user_message: 用户消息

        Returns:
            LLM 响应内容（可能为空字符串）
        """
        log_msg = (
            "\n"
            "[LLM 调用]\n"
            f"[模型] {self.model}\n"
            "[User Message]\n"
            f"{user_message}\n"
        )
        logger.info(log_msg)

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
        )

        content = response.choices[0].message.content if response.choices else None
        result = (content or "").strip()

        logger.info(f"\n[LLM 响应内容]\n{result}")

        return result

    def _complete(self, user_message: str, query: str) -> LLMResponse:
        """调用 LLM 并提取操作；失败时返回 is_error 的回复"""
        try:
            text = self._call_llm(SYSTEM_PROMPT, user_message)
        except OpenAIError as e:
            logger.error(f"LLM 调用失败: {e}")
            return LLMResponse(text=ERROR_REPLY, is_error=True)

        if not text:
            logger.warning("LLM 返回了空内容")
            return LLMResponse(text=EMPTY_REPLY, is_error=True)

        return LLMResponse(text=text, operations=extract_operations(text, query))

    def process_query(self, prompt: str) -> LLMResponse:
        """
        处理一般性问题

        Args:
            prompt: 用户问题

        Returns:
            LLMResponse（包含从回复中提取的操作）
        """
        return self._complete(f"Answer the following query about Excel: {prompt}", prompt)

    def process_excel_operation(self, command: str, document: SpreadsheetDocument) -> LLMResponse:
        """
        处理表格操作请求（提示词中包含活动工作表的结构信息）

        Args:
            command: 用户的自然语言请求
            document: 当前文档

        Returns:
            LLMResponse
        """
        return self._complete(build_operation_prompt(command, document), command)
