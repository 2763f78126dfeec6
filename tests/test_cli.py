from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import main
from fathom.config import Settings, settings
from fathom.errors import InsufficientSourcesError
from fathom.models.research import ResearchState, TokenUsage
from fathom.services import streaming


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("main.configure_logging"):
        yield


def _fake_orchestrator(report="# Report", error=None):
    instance = MagicMock()
    instance.run = AsyncMock(
        return_value=ResearchState(token_usage=TokenUsage(prompt=10, completion=5, total=15))
    )
    instance.generate_report = AsyncMock(return_value=report, side_effect=error)
    return MagicMock(return_value=instance), instance


def test_parser_defaults_follow_settings():
    args = main.build_parser().parse_args(["solid state batteries"])

    assert args.prompt == "solid state batteries"
    assert args.depth == settings.research_depth
    assert args.breadth == settings.research_breadth
    assert args.concurrency == settings.research_concurrency
    assert args.model == settings.llm_model
    assert args.log_file == "research.jsonl"
    assert args.output is None
    assert args.verbose is False


def test_parser_reads_short_flags():
    args = main.build_parser().parse_args(
        ["topic", "-d", "1", "-b", "4", "-c", "2", "-m", "qwen", "-o", "out.md", "-v"]
    )

    assert (args.depth, args.breadth, args.concurrency) == (1, 4, 2)
    assert args.model == "qwen"
    assert args.output == "out.md"
    assert args.verbose is True


def test_main_writes_report_to_output_file(tmp_path):
    factory, instance = _fake_orchestrator()
    output = tmp_path / "report.md"

    with patch("main.ResearchOrchestrator", factory):
        code = main.main(["topic", "-o", str(output), "-l", str(tmp_path / "log.jsonl"), "-d", "1"])

    assert code == 0
    assert output.read_text(encoding="utf-8") == "# Report"
    config = factory.call_args.args[0]
    assert config.depth == 1
    instance.run.assert_awaited_once_with("topic")
    instance.generate_report.assert_awaited_once_with("topic")


def test_main_prints_report_without_output_file(tmp_path, capsys):
    factory, _ = _fake_orchestrator(report="# Findings")

    with patch("main.ResearchOrchestrator", factory):
        code = main.main(["topic", "-l", str(tmp_path / "log.jsonl")])

    captured = capsys.readouterr()
    assert code == 0
    assert "FINAL REPORT" in captured.out
    assert "# Findings" in captured.out
    assert "Tokens: 15 (Prompt: 10, Completion: 5)" in captured.err


def test_main_reports_refused_synthesis(tmp_path, capsys):
    factory, _ = _fake_orchestrator(error=InsufficientSourcesError(1, 2))

    with patch("main.ResearchOrchestrator", factory):
        code = main.main(["topic", "-l", str(tmp_path / "log.jsonl")])

    assert code == 1
    assert "Research failed: Insufficient source diversity" in capsys.readouterr().err


def test_main_rejects_invalid_configuration(tmp_path, capsys):
    code = main.main(["topic", "-b", "0", "-l", str(tmp_path / "log.jsonl")])

    assert code == 1
    assert "Research failed" in capsys.readouterr().err


def test_verbose_run_streams_events_to_console(tmp_path, capsys):
    factory, _ = _fake_orchestrator()
    log_path = tmp_path / "log.jsonl"

    with patch("main.ResearchOrchestrator", factory):
        main.main(["topic", "-v", "-l", str(log_path)])

    sink = factory.call_args.kwargs["event_sink"]
    sink.emit(streaming.error("boom"), TokenUsage())

    assert "[!] Error: boom" in capsys.readouterr().err
    assert json.loads(log_path.read_text(encoding="utf-8"))["event"]["message"] == "boom"


def test_settings_split_screener_patterns(monkeypatch):
    monkeypatch.setenv("SCREENER_DENY_PATTERNS", r"forum\., /tag/ ,")
    monkeypatch.setenv("RESEARCH_DEPTH", "4")

    configured = Settings(_env_file=None)

    assert configured.screener_deny_list == [r"forum\.", "/tag/"]
    assert configured.screener_allow_list == []
    assert configured.research_depth == 4
