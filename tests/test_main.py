"""
Tests for the main entry point and CLI commands.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, Mock, patch

from typer.testing import CliRunner

from multipart_relay.core.domain.models import (
    PartRecord, RemoteUploadStatus, SessionStatus, UploadProgress, UploadResult,
    UploadSession, UploadStrategy
)
from multipart_relay.core.exceptions import BackendError, UploadCancelledError
from multipart_relay.infrastructure.storage.kv import JsonFileKeyValueStore
from multipart_relay.infrastructure.storage.session_store import LocalSessionStore
from multipart_relay.main import ProgressBarReporter, cli, load_config

SESSION = UploadSession(
    upload_id="u-1", file_name="video.mp4", file_size=300,
    chunk_size=128, project_id="project1")


class TestLoadConfig:
    """Test cases for load_config()."""

    def test_command_line_overrides(self) -> None:
        with patch.dict('os.environ', {}, clear=True):
            config = load_config(
                None, backend_url="https://api.test", token="t", project="p9",
                chunk_size_mb=16, log_level="warning")

        assert config.backend.base_url == "https://api.test"
        assert config.backend.token == "t"
        assert config.upload.project_id == "p9"
        assert config.upload.chunk_size_mb == 16
        assert config.logging.level == "WARNING"

    def test_debug_forces_debug_level(self) -> None:
        with patch.dict('os.environ', {}, clear=True):
            config = load_config(None, log_level="ERROR", debug=True)

        assert config.debug is True
        assert config.logging.level == "DEBUG"


class TestProgressBarReporter:
    """Test cases for ProgressBarReporter."""

    def test_updates_by_delta(self) -> None:
        bar = Mock()
        reporter = ProgressBarReporter(bar)

        reporter(UploadProgress(file_name="f", bytes_uploaded=10, total_bytes=30))
        reporter(UploadProgress(file_name="f", bytes_uploaded=30, total_bytes=30))

        assert [c.args[0] for c in bar.update.call_args_list] == [10, 20]


class TestMainCLI:
    """Test cases for the CLI commands."""

    def setup_method(self) -> None:
        self.runner = CliRunner()

    def test_cli_help_command(self) -> None:
        result = self.runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Resumable multipart uploads" in result.output

    @patch('multipart_relay.main.run_upload', new_callable=AsyncMock)
    def test_upload_multipart(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = UploadResult(
            file_name="video.mp4", file_size=300, strategy=UploadStrategy.MULTIPART,
            upload_id="u-1", parts=[PartRecord(1, "a"), PartRecord(2, "b"), PartRecord(3, "c")],
            parts_skipped=2, parts_uploaded=1, resumed=True, message="Upload completed")

        result = self.runner.invoke(
            cli, ["upload", "video.mp4", "--project", "p9", "--chunk-size-mb", "8", "--no-progress"])

        assert result.exit_code == 0
        assert "in 3 parts, 2 resumed, upload id u-1" in result.output
        assert "Upload completed" in result.output
        config, path, timeout, show_progress = mock_run.call_args.args
        assert path == "video.mp4"
        assert config.upload.project_id == "p9"
        assert config.upload.chunk_size_mb == 8
        assert show_progress is False

    @patch('multipart_relay.main.run_upload', new_callable=AsyncMock)
    def test_upload_single(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = UploadResult(
            file_name="a.txt", file_size=5, strategy=UploadStrategy.SINGLE, parts_uploaded=1)

        result = self.runner.invoke(cli, ["upload", "a.txt"])

        assert result.exit_code == 0
        assert "in a single request" in result.output

    @patch('multipart_relay.main.run_upload', new_callable=AsyncMock)
    def test_upload_cancelled(self, mock_run: AsyncMock) -> None:
        mock_run.side_effect = UploadCancelledError("Upload canceled by user.")

        result = self.runner.invoke(cli, ["upload", "video.mp4"])

        assert result.exit_code == 130

    @patch('multipart_relay.main.run_upload', new_callable=AsyncMock)
    def test_upload_failure(self, mock_run: AsyncMock) -> None:
        mock_run.side_effect = BackendError("/upload/multipart/start failed: 500")

        result = self.runner.invoke(cli, ["upload", "video.mp4"])

        assert result.exit_code == 1

    @patch('multipart_relay.main.run_upload', new_callable=AsyncMock)
    def test_upload_missing_file(self, mock_run: AsyncMock) -> None:
        mock_run.side_effect = FileNotFoundError("video.mp4")

        result = self.runner.invoke(cli, ["upload", "video.mp4"])

        assert result.exit_code == 1

    @patch('multipart_relay.main.run_abort', new_callable=AsyncMock)
    def test_abort(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = True

        result = self.runner.invoke(cli, ["abort", "video.mp4"])

        assert result.exit_code == 0
        assert "aborted" in result.output

    @patch('multipart_relay.main.run_abort', new_callable=AsyncMock)
    def test_abort_nothing_found(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = False

        result = self.runner.invoke(cli, ["abort", "video.mp4"])

        assert result.exit_code == 1

    @staticmethod
    def fake_application(app_class: MagicMock) -> MagicMock:
        app = MagicMock()
        app.orchestrator.abort_saved = AsyncMock(return_value=True)
        app_class.return_value.__aenter__.return_value = app
        app_class.return_value.__aexit__.return_value = False
        return app

    @patch('multipart_relay.main.UploadApplication')
    def test_abort_defaults_to_session_project(
        self, app_class: MagicMock, tmp_path: Path
    ) -> None:
        path = tmp_path / "video.mp4"
        path.write_bytes(b"x" * 300)
        app = self.fake_application(app_class)

        with patch.dict('os.environ', {}, clear=True):
            result = self.runner.invoke(cli, ["abort", str(path)])

        assert result.exit_code == 0
        assert app.orchestrator.abort_saved.await_args.args[1] is None

    @patch('multipart_relay.main.UploadApplication')
    def test_abort_with_explicit_project(self, app_class: MagicMock, tmp_path: Path) -> None:
        path = tmp_path / "video.mp4"
        path.write_bytes(b"x" * 300)
        app = self.fake_application(app_class)

        with patch.dict('os.environ', {}, clear=True):
            result = self.runner.invoke(cli, ["abort", str(path), "--project", "p9"])

        assert result.exit_code == 0
        assert app.orchestrator.abort_saved.await_args.args[1] == "p9"

    @patch('multipart_relay.main.run_status', new_callable=AsyncMock)
    def test_status(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = SessionStatus(
            fingerprint="video.mp4-300-1", session=SESSION,
            remote=RemoteUploadStatus(file_name="video.mp4", file_size=300, parts={1: "a"}),
            parts_total=3)

        result = self.runner.invoke(cli, ["status", "video.mp4"])

        assert result.exit_code == 0
        assert "Upload id: u-1" in result.output
        assert "1/3 parts" in result.output

    @patch('multipart_relay.main.run_status', new_callable=AsyncMock)
    def test_status_without_session(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = None

        result = self.runner.invoke(cli, ["status", "video.mp4"])

        assert result.exit_code == 0
        assert "No upload in progress" in result.output

    def test_sessions(self, tmp_path: Path) -> None:
        LocalSessionStore(JsonFileKeyValueStore(tmp_path / "sessions.json")).save(
            "video.mp4-300-1", SESSION)

        result = self.runner.invoke(
            cli, ["sessions"], env={"MULTIPART_RELAY_SESSION_DIR": str(tmp_path)})

        assert result.exit_code == 0
        assert "u-1" in result.output
        assert "video.mp4-300-1" in result.output

    def test_sessions_empty(self, tmp_path: Path) -> None:
        result = self.runner.invoke(
            cli, ["sessions"], env={"MULTIPART_RELAY_SESSION_DIR": str(tmp_path)})

        assert result.exit_code == 0
        assert "No cached upload sessions" in result.output

    def test_init_and_validate_config(self, tmp_path: Path) -> None:
        output = tmp_path / "config.json"

        result = self.runner.invoke(cli, ["init-config", "--output", str(output), "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(output.read_text(encoding="utf-8"))["upload"]["chunk_size_mb"] == 64

        result = self.runner.invoke(cli, ["validate-config", str(output)])
        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_validate_invalid_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"upload": {"chunk_size_mb": 0}}), encoding="utf-8")

        result = self.runner.invoke(cli, ["validate-config", str(path)])

        assert result.exit_code == 1
