"""Tests for the interactive command dispatcher."""

from cli import load_document, run_command
from excelbot.engine.llm_client import LLMResponse
from excelbot.engine.sheet import create_empty_document, document_from_rows
from excelbot.processor import SpreadsheetAssistant


class StubLLMClient:
    def __init__(self, response):
        self.response = response

    def process_excel_operation(self, command, document):
        return self.response


def make_assistant(response=None):
    return SpreadsheetAssistant(StubLLMClient(response or LLMResponse(text="ok")))


class TestRunCommand:
    def test_quit(self):
        doc = create_empty_document(2, 1)
        assert run_command(":quit", doc, make_assistant()) is None
        assert run_command(":q", doc, make_assistant()) is None

    def test_use_sheet(self, capsys):
        doc = document_from_rows({"A": [[1]], "B": [[2]]})
        assert run_command(":use B", doc, make_assistant()).active_sheet == "B"
        assert run_command(":use C", doc, make_assistant()) is doc
        assert "C" in capsys.readouterr().out

    def test_show_and_sheets(self, capsys):
        doc = document_from_rows({"Data": [["Name"], ["Amy"]]})
        assert run_command(":show", doc, make_assistant()) is doc
        assert run_command(":sheets", doc, make_assistant()) is doc
        out = capsys.readouterr().out
        assert "Amy" in out
        assert "* Data" in out

    def test_export(self, tmp_path):
        doc = create_empty_document(2, 1)
        target = tmp_path / "out.xlsx"
        run_command(f":export {target}", doc, make_assistant())
        assert target.exists()

    def test_web_without_crawler(self, capsys):
        doc = create_empty_document(2, 1)
        assert run_command(":web https://example.com", doc, make_assistant()) is doc
        assert "❌" in capsys.readouterr().out

    def test_assistant_command(self):
        doc = create_empty_document(2, 1)
        response = LLMResponse(
            text="Done",
            operations=[{"type": "update_cell", "data": {"row": 1, "col": 0, "value": "x"}}],
        )
        new_doc = run_command("put x in A2", doc, make_assistant(response))
        assert new_doc.get_active_sheet().data[1][0].value == "x"

    def test_assistant_error_keeps_document(self):
        doc = create_empty_document(2, 1)
        response = LLMResponse(text="Sorry", is_error=True)
        assert run_command("anything", doc, make_assistant(response)) is doc


class TestLoadDocument:
    def test_blank_document(self):
        doc = load_document(None)
        assert doc.get_active_sheet().row_count() > 1

    def test_missing_file(self, tmp_path):
        assert load_document(str(tmp_path / "nope.xlsx")) is None
