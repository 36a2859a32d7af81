import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from modflow import main


def test_resolve_base_dir_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("MODFLOW_HOME", str(tmp_path))

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_compiled(tmp_path, monkeypatch):
    monkeypatch.delenv("MODFLOW_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "modflow.exe")])

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_source(monkeypatch):
    monkeypatch.delenv("MODFLOW_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", False, raising=False)
    monkeypatch.setattr(sys, "compiled", False, raising=False)

    assert main.resolve_base_dir() == main.Path(main.__file__).resolve().parents[2]


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", MagicMock())
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit):
        main.load_environment()


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", MagicMock())
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")

    assert main.load_environment() == "abc"


def test_build_intents():
    intents = main.build_intents()

    assert intents.message_content is True
    assert intents.members is True
    assert intents.guilds is True


@pytest.mark.asyncio
async def test_shutdown_runtime_closes_everything():
    bot = SimpleNamespace(is_closed=lambda: False, close=AsyncMock())
    notifier = MagicMock()
    generator = SimpleNamespace(aclose=AsyncMock())

    await main.shutdown_runtime(bot, notifier, generator)

    notifier.close.assert_called_once()
    bot.close.assert_awaited_once()
    generator.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_runtime_survives_close_errors():
    bot = SimpleNamespace(is_closed=lambda: False, close=AsyncMock(side_effect=RuntimeError("boom")))
    generator = SimpleNamespace(aclose=AsyncMock())

    await main.shutdown_runtime(bot, MagicMock(), generator)

    generator.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_main_returns_one_when_bot_creation_fails(monkeypatch):
    generator = SimpleNamespace(aclose=AsyncMock())
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "ResponseGenerator", lambda: generator)
    monkeypatch.setattr(main, "build_pipeline", MagicMock(side_effect=RuntimeError("bad config")))

    assert await main.async_main() == 1
    generator.aclose.assert_awaited_once()


def test_main_handles_keyboard_interrupt():
    with patch.object(main, "async_main", MagicMock()), \
            patch.object(main.asyncio, "run", MagicMock(side_effect=KeyboardInterrupt)):
        assert main.main() == 0


def test_main_handles_unexpected_errors():
    with patch.object(main, "async_main", MagicMock()), \
            patch.object(main.asyncio, "run", MagicMock(side_effect=RuntimeError("boom"))):
        assert main.main() == 1


def test_main_returns_runtime_exit_code():
    with patch.object(main, "async_main", MagicMock()), \
            patch.object(main.asyncio, "run", MagicMock(return_value=0)):
        assert main.main() == 0
