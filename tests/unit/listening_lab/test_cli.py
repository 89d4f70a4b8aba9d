"""
Unit Tests for the CLI

Tests argument parsing, exit codes from main() and the single-query
routing in async_main().
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from src.listening_lab import cli
from src.listening_lab.cli import build_coach, create_parser, main
from src.listening_lab.config import ListeningLabConfig


class TestCreateParser:
    """Test suite for argument parsing."""

    def test_no_arguments_means_interactive(self):
        args = create_parser().parse_args([])

        assert args.query is None
        assert args.connect_timeout is None
        assert args.verbose is False

    def test_query_and_options(self):
        args = create_parser().parse_args(["Radiohead Idioteque", "--connect-timeout", "5", "-v"])

        assert args.query == "Radiohead Idioteque"
        assert args.connect_timeout == 5.0
        assert args.verbose is True

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "listening-lab 0.1.0" in capsys.readouterr().out


class TestBuildCoach:
    """Test suite for optional coach construction."""

    def test_disabled_without_key(self):
        assert build_coach(ListeningLabConfig(openai_api_key=None)) is None

    def test_enabled_with_key(self):
        coach = build_coach(ListeningLabConfig(openai_api_key="sk-test", chain_description="DAC"))

        assert coach.api_key == "sk-test"
        assert coach.chain_description == "DAC"


@pytest.fixture
def quiet_main():
    """Keep main() from reading .env or reconfiguring logging."""
    with patch.object(cli, "load_dotenv"), patch.object(cli, "setup_logging") as setup_logging:
        yield setup_logging


class TestMain:
    """Test suite for main() exit codes."""

    def test_returns_async_main_exit_code(self, quiet_main):
        with patch.object(cli, "async_main", new=AsyncMock(return_value=0)) as async_main:
            assert main(["Radiohead Idioteque"]) == 0

        assert async_main.call_args.args[0].query == "Radiohead Idioteque"

    def test_verbose_enables_debug_logging(self, quiet_main):
        with patch.object(cli, "async_main", new=AsyncMock(return_value=0)):
            main(["-v"])

        quiet_main.assert_called_once_with("DEBUG")

    def test_unexpected_error_returns_one(self, quiet_main, capsys):
        with patch.object(cli, "async_main", new=AsyncMock(side_effect=ValueError("bad config"))):
            assert main([]) == 1

        assert "Error: bad config" in capsys.readouterr().out

    def test_keyboard_interrupt_returns_one(self, quiet_main, capsys):
        with patch.object(cli, "async_main", new=AsyncMock(side_effect=KeyboardInterrupt)):
            assert main([]) == 1

        assert "Interrupted" in capsys.readouterr().out


@pytest.mark.asyncio
class TestAsyncMain:
    """Test suite for routing between single-query and interactive modes."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        for var in ("OPENAI_API_KEY", "OPENAI_KEY", "LLM_API_KEY", "LISTENING_LAB_CONNECT_TIMEOUT"):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setenv("ROON_TOKEN_FILE", str(tmp_path / "token.json"))
        monkeypatch.setenv("LISTENING_LAB_HISTORY_FILE", str(tmp_path / "history"))

    async def test_query_runs_single_play_and_closes(self):
        connection = Mock()
        connection.close = AsyncMock()
        args = create_parser().parse_args(["Radiohead Idioteque", "--connect-timeout", "2"])

        with patch.object(cli, "RoonConnection", return_value=connection), \
                patch.object(cli, "run_single_play", new=AsyncMock(return_value=1)) as single_play:
            exit_code = await cli.async_main(args)

        assert exit_code == 1
        single_play.assert_awaited_once_with("Radiohead Idioteque", connection, 2.0)
        connection.close.assert_awaited_once()

    async def test_no_query_runs_interactive(self):
        connection = Mock()
        connection.close = AsyncMock()
        args = create_parser().parse_args([])

        with patch.object(cli, "RoonConnection", return_value=connection), \
                patch.object(cli, "run_interactive", new=AsyncMock(return_value=0)) as interactive:
            assert await cli.async_main(args) == 0

        config = interactive.call_args.args[0]
        assert config.connect_timeout == 3.0
        connection.close.assert_awaited_once()

    async def test_invalid_timeout_rejected(self):
        args = create_parser().parse_args(["q", "--connect-timeout", "0"])

        with pytest.raises(ValueError, match="Invalid connect_timeout"):
            await cli.async_main(args)
