"""表格助手处理器模块"""

from .assistant import AssistantTurn, SpreadsheetAssistant

__all__ = [
    "AssistantTurn",
    "SpreadsheetAssistant",
]
