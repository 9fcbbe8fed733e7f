"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from tunelink import __main__ as entry_point
from tunelink import __version__
from tunelink.cli import app as cli_app
from tunelink.exceptions import CancellationError, NotFoundError
from tunelink.storage.config_manager import ConfigManager

SECRET = "g4el58wc0zvf9na1"

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "tunelink" / "config.ini"
    monkeypatch.setattr(cli_app, "CONFIG_FILE", path)
    monkeypatch.delenv("DEEZER_ARL", raising=False)
    monkeypatch.delenv("DEEZER_SECRET", raising=False)
    return path


class TestCli:
    """Tests for the typer app."""

    def test_version(self) -> None:
        """--version prints the package version."""
        result = runner.invoke(cli_app.app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_writes_config(self, config_file: Path) -> None:
        """init stores the credentials in the INI file."""
        result = runner.invoke(cli_app.app, ["init", "cookie", SECRET, "--force"])

        assert result.exit_code == 0
        config = ConfigManager(config_file).load_config(environ={})
        assert config.arl == "cookie"
        assert config.secret == SECRET

    def test_init_rejects_short_secret(self, config_file: Path) -> None:
        """A secret too short for key derivation is refused."""
        result = runner.invoke(cli_app.app, ["init", "cookie", "short", "--force"])

        assert result.exit_code == 1
        assert not config_file.exists()

    def test_show_config_masks_credentials(self, config_file: Path) -> None:
        """Credentials are never printed in full."""
        ConfigManager(config_file).save_new_config({"arl": "cookie-value", "secret": SECRET})

        result = runner.invoke(cli_app.app, ["--show-config"])

        assert result.exit_code == 0
        assert "cookie-value" not in result.output
        assert SECRET not in result.output


class TestMain:
    """Tests for the console-script entry point."""

    @pytest.mark.parametrize(
        "error, code",
        [
            (CancellationError("stop"), 130),
            (NotFoundError("No platforms available"), 1),
            (RuntimeError("bug"), 1),
        ],
    )
    def test_exit_codes(
        self, monkeypatch: pytest.MonkeyPatch, error: Exception, code: int
    ) -> None:
        """Errors escaping a command map onto process exit codes."""

        def failing_app() -> None:
            raise error

        monkeypatch.setattr(entry_point, "app", failing_app)

        with pytest.raises(SystemExit) as exc_info:
            entry_point.main()

        assert exc_info.value.code == code
