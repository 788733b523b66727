"""配置"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # 忽略 .env 中未声明的变量，避免 ValidationError
    )

    # 应用配置
    LOG_LEVEL: str = "INFO"

    # OpenAI 兼容接口配置（与 llm_client / cli 使用的变量名一致）
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.2
    LLM_MAX_TOKENS: int = 1024
    LLM_TIMEOUT: float = 60.0

    # Firecrawl 网页抓取配置
    FIRECRAWL_API_KEY: Optional[str] = None
    FIRECRAWL_API_URL: str = "https://api.firecrawl.dev/v1/crawl"
    FIRECRAWL_TIMEOUT: float = 30.0

    # 新建表格的默认尺寸
    SHEET_COLUMNS: int = 15
    SHEET_ROWS: int = 20
    DEFAULT_SHEET_NAME: str = "Sheet 1"


settings = Settings()
