"""表格助手 - 串联 LLM、操作提取与执行"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from excelbot.engine.agent_session import AgentSession
from excelbot.engine.executor import apply_operations
from excelbot.engine.models import OperationError, SpreadsheetDocument
from excelbot.engine.prompt import classify_request
from excelbot.engine.sheet import add_sheet
from excelbot.services.web_crawler import CrawlResult, convert_to_rows

if TYPE_CHECKING:
    from excelbot.engine.llm_client import LLMClient
    from excelbot.services.web_crawler import FirecrawlClient

logger = logging.getLogger(__name__)


WEB_SHEET_NAME = "Web Data"


@dataclass
class AssistantTurn:
    """
    一轮对话的结果

    Attributes:
        reply: 返回给用户的文本
        document: 执行后的文档（失败时为原文档）
        operations: 从回复中提取的操作
        errors: 未能应用的操作的错误
        session: 本轮的 Agent 会话
        is_error: LLM 调用是否失败
    """

    reply: str
    document: SpreadsheetDocument
    session: AgentSession
    operations: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[OperationError] = field(default_factory=list)
    is_error: bool = False
    applied_count: int = 0


class SpreadsheetAssistant:
    """
    表格助手

    用法示例：

        assistant = SpreadsheetAssistant(LLMClient())
        turn = assistant.handle(document, "sum column B into B7")
        document = turn.document
    """

    def __init__(
        self,
        llm_client: "LLMClient",
        crawler: Optional["FirecrawlClient"] = None,
        rng: Optional[random.Random] = None,
    ):
        self.llm_client = llm_client
        self.crawler = crawler
        self.rng = rng

    def handle(self, document: SpreadsheetDocument, command: str) -> AssistantTurn:
        """
        处理一条用户命令

        Args:
            document: 当前文档
            command: 自然语言命令

        Returns:
            AssistantTurn
        """
        session = AgentSession()
        session.start(command)
        session.update_thinking(f"请求类型: {classify_request(command)}")
        session.set_steps(["生成操作", "应用操作"])

        response = self.llm_client.process_excel_operation(command, document)
        if response.is_error:
            session.update_step_result(0, response.text)
            session.finish()
            return AssistantTurn(reply=response.text, document=document, session=session, is_error=True)

        session.update_step_result(0, f"{len(response.operations)} 个操作")
        session.complete_step(0)

        session.begin_execution()
        result = apply_operations(document, response.operations, self.rng)
        session.update_step_result(1, f"已应用 {result.applied_count}/{len(response.operations)} 个操作")
        session.complete_step(1)
        session.finish()

        logger.info(f"命令处理完成: 应用 {result.applied_count} 个操作, {len(result.errors)} 个错误")

        return AssistantTurn(
            reply=response.text,
            document=result.document,
            session=session,
            operations=response.operations,
            errors=result.errors,
            applied_count=result.applied_count,
        )

    def import_web_data(self, document: SpreadsheetDocument, url: str) -> Tuple[SpreadsheetDocument, CrawlResult]:
        """
        抓取网页数据并放入新的工作表

        Returns:
            (新文档, 抓取结果)；失败或没有数据时文档不变
        """
        if self.crawler is None:
            return document, CrawlResult(success=False, error="未配置网页抓取服务")

        crawl = self.crawler.fetch_web_data(url)
        if not crawl.success or not crawl.data:
            return document, crawl

        name = WEB_SHEET_NAME
        suffix = 2
        while name in document.sheets:
            name = f"{WEB_SHEET_NAME} {suffix}"
            suffix += 1

        return add_sheet(document, name, convert_to_rows(crawl.data)), crawl
