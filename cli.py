"""ExcelBot 表格助手 - 命令行入口"""

import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from excelbot.core.config import settings
from excelbot.engine.addressing import index_to_column
from excelbot.engine.excel_parser import ExcelParser
from excelbot.engine.excel_writer import export_to_file
from excelbot.engine.llm_client import LLMClient
from excelbot.engine.models import SpreadsheetDocument, display_value
from excelbot.engine.sheet import create_empty_document
from excelbot.processor.assistant import SpreadsheetAssistant
from excelbot.services.web_crawler import FirecrawlClient


# 预览时显示的最大行列数
PREVIEW_ROWS = 20
PREVIEW_COLS = 10
CELL_WIDTH = 12


def load_document(file_path: Optional[str]) -> Optional[SpreadsheetDocument]:
    """
    加载 Excel 文件，未指定文件时创建空白表格

    Args:
        file_path: Excel 文件路径

    Returns:
        文档；加载失败时返回 None
    """
    if not file_path:
        print("📄 创建空白表格")
        return create_empty_document(
            columns=settings.SHEET_COLUMNS,
            rows=settings.SHEET_ROWS,
            name=settings.DEFAULT_SHEET_NAME,
        )

    path = Path(file_path)
    print(f"\n📄 文件: {path.name}")
    try:
        document = ExcelParser.parse_file(path)
    except (FileNotFoundError, ValueError) as e:
        print(f"   ❌ 解析失败: {e}")
        return None

    for name, sheet in document.sheets.items():
        print(f"   - {name}: {sheet.row_count()} 行 x {sheet.column_count()} 列")
    print("   ✅ 解析成功")
    return document


def display_sheet(document: SpreadsheetDocument):
    """显示活动工作表的左上区域"""
    sheet = document.get_active_sheet()
    columns = min(sheet.column_count(), PREVIEW_COLS)

    print("\n" + "=" * 60)
    print(f"📊 Sheet: {document.active_sheet} ({sheet.row_count()} 行 x {sheet.column_count()} 列)")
    print("=" * 60)

    header = "".join(index_to_column(c).ljust(CELL_WIDTH) for c in range(columns))
    print(f"{'':>4} {header}")
    for r, row in enumerate(sheet.data[:PREVIEW_ROWS]):
        cells = "".join(
            display_value(row[c] if c < len(row) else "")[: CELL_WIDTH - 1].ljust(CELL_WIDTH)
            for c in range(columns)
        )
        print(f"{r + 1:>4} {cells}")

    if sheet.row_count() > PREVIEW_ROWS:
        print(f"     ... 共 {sheet.row_count()} 行")
    if sheet.active_cell is not None:
        print(f"   活动单元格: {index_to_column(sheet.active_cell.col)}{sheet.active_cell.row + 1}")
    for chart in sheet.charts:
        print(f"   📈 图表: {chart.type} - {chart.title}")


def print_help():
    print("ExcelBot 表格助手\n")
    print("用法:")
    print("  python cli.py [excel_file]")
    print("  python cli.py --help")
    print("\n命令:")
    print("  :show            显示当前工作表")
    print("  :sheets          列出所有工作表")
    print("  :use <name>      切换工作表")
    print("  :export <path>   导出为 xlsx")
    print("  :web <url>       抓取网页数据到新工作表")
    print("  :quit            退出")
    print("  其他输入         交给助手处理，例如 \"sum column B into B7\"")
    print("\n环境变量:")
    print("  OPENAI_API_KEY     - OpenAI API Key（必需）")
    print("  OPENAI_BASE_URL    - API Base URL（可选）")
    print(f"  OPENAI_MODEL       - 模型名称（默认: {settings.OPENAI_MODEL}）")
    print("  FIRECRAWL_API_KEY  - Firecrawl API Key（:web 命令需要）")


def run_command(
    line: str,
    document: SpreadsheetDocument,
    assistant: SpreadsheetAssistant,
) -> Optional[SpreadsheetDocument]:
    """
    执行一条输入

    Returns:
        新文档；输入为 :quit 时返回 None
    """
    command, _, argument = line.partition(" ")
    argument = argument.strip()

    if command in (":quit", ":q", ":exit"):
        return None

    if command == ":show":
        display_sheet(document)
        return document

    if command == ":sheets":
        for name in document.get_sheet_names():
            marker = "*" if name == document.active_sheet else " "
            print(f"  {marker} {name}")
        return document

    if command == ":use":
        try:
            document = document.with_active_sheet(argument)
        except ValueError as e:
            print(f"❌ {e}")
        return document

    if command == ":export":
        if not argument:
            print("❌ 请指定输出文件路径")
            return document
        try:
            output = export_to_file(document, argument)
            print(f"✅ 已导出到: {output}")
        except (OSError, ValueError) as e:
            print(f"❌ 导出失败: {e}")
        return document

    if command == ":web":
        if not argument:
            print("❌ 请指定网页地址")
            return document
        document, crawl = assistant.import_web_data(document, argument)
        if crawl.success:
            print(f"✅ 已抓取 {len(crawl.data)} 条结果，当前工作表: {document.active_sheet}")
        else:
            print(f"❌ {crawl.error}")
        return document

    turn = assistant.handle(document, line)
    print("\n🤖 " + turn.reply)
    if turn.is_error:
        return document

    print(f"\n⚙️  应用了 {turn.applied_count}/{len(turn.operations)} 个操作")
    for error in turn.errors:
        print(f"   ⚠️  {error}")
    if turn.applied_count:
        display_sheet(turn.document)
    return turn.document


def main():
    """主函数"""
    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if len(sys.argv) > 1 and sys.argv[1] in ["-h", "--help"]:
        print_help()
        return

    document = load_document(sys.argv[1] if len(sys.argv) > 1 else None)
    if document is None:
        return

    # 初始化 LLM 客户端
    try:
        llm_client = LLMClient()
        print("\n✅ LLM 客户端已初始化")
        print(f"   模型: {llm_client.model}")
    except ValueError as e:
        print(f"\n⚠️  LLM 客户端初始化失败: {e}")
        return

    assistant = SpreadsheetAssistant(llm_client, crawler=FirecrawlClient())
    display_sheet(document)

    while True:
        try:
            line = input("\n💬 > ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not line:
            continue

        document = run_command(line, document, assistant)
        if document is None:
            break

    print("👋 再见")


if __name__ == "__main__":
    main()
