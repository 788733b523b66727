"""网页数据服务 - 通过 Firecrawl 抓取网页并转换为表格行"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from excelbot.core.config import settings

logger = logging.getLogger(__name__)


PREVIEW_LENGTH = 200
HEADER_ROW = ["URL", "Title", "Content Preview"]


@dataclass
class CrawlResult:
    """抓取结果（失败时 success 为 False，error 为原因）"""

    success: bool
    data: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


class FirecrawlClient:
    """Firecrawl 客户端"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            api_key: Firecrawl API Key
            api_url: 抓取接口地址
            timeout: 请求超时（秒）
            transport: 自定义 httpx transport（测试时注入）
        """
        self.api_key = api_key or settings.FIRECRAWL_API_KEY
        self.api_url = api_url or settings.FIRECRAWL_API_URL
        self.timeout = timeout if timeout is not None else settings.FIRECRAWL_TIMEOUT
        self.transport = transport

    def fetch_web_data(self, url: str) -> CrawlResult:
        """
        抓取网页数据

        Args:
            url: 起始网页地址

        Returns:
            CrawlResult（不会抛出异常）
        """
        if not self.api_key:
            return CrawlResult(success=False, error="未设置 FIRECRAWL_API_KEY")

        logger.info(f"抓取网页数据: {url}")

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"url": url, "depth": 1, "max_pages": 5},
                )
        except httpx.HTTPError as e:
            logger.error(f"Firecrawl 请求失败: {e}")
            return CrawlResult(success=False, error=f"请求网页数据失败: {e}")

        if response.is_error:
            logger.error(f"Firecrawl 返回错误状态 {response.status_code}: {response.text}")
            return CrawlResult(
                success=False,
                error=f"抓取网页数据失败: {response.reason_phrase or response.status_code}",
            )

        try:
            payload = response.json()
        except ValueError:
            return CrawlResult(success=False, error="Firecrawl 返回的不是合法 JSON")

        results = payload.get("results") if isinstance(payload, dict) else None
        items = [item for item in (results or []) if isinstance(item, dict)]
        logger.info(f"Firecrawl 返回 {len(items)} 条结果")
        return CrawlResult(success=True, data=items)


def convert_to_rows(items: List[Dict[str, Any]]) -> List[List[Any]]:
    """
    抓取结果转换为表格行

    第一行是表头 ["URL", "Title", "Content Preview"]，内容预览取前 200 个字符并加上 "..."。
    """
    rows: List[List[Any]] = [list(HEADER_ROW)]
    for item in items:
        content = str(item.get("content") or "")
        rows.append([
            str(item.get("url") or ""),
            str(item.get("title") or ""),
            content[:PREVIEW_LENGTH] + "...",
        ])
    return rows
