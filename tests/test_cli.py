"""Tests for the upload CLI script."""

import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Project paths
project_root = Path(__file__).parent.parent
scripts_dir = project_root / "scripts"
sys.path.insert(0, str(scripts_dir))

import upload  # noqa: E402


def clean_env() -> dict:
    """Environment without deploy settings."""
    return {
        key: value
        for key, value in os.environ.items()
        if not key.startswith("PLUGIN_")
        and key not in ("GCS_BUCKET", "GOOGLE_APPLICATION_CREDENTIALS_CONTENTS")
    }


class TestUploadCLI:
    """Tests for upload.py run as a script."""

    def test_help_message(self):
        """Test that --help works."""
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py"), "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "Upload build artifacts" in result.stdout
        assert "--bucket" in result.stdout
        assert "--strip-prefix" in result.stdout
        assert "--exclude" in result.stdout

    def test_missing_bucket(self, tmp_path):
        """Test that a run without a bucket fails with a config error."""
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py"), "--source", "build/**"],
            capture_output=True,
            text=True,
            cwd=tmp_path,
            env=clean_env(),
        )
        assert result.returncode == 1
        assert "Bucket is required" in result.stdout

    def test_invalid_acl(self):
        """Test that an unknown access mode is rejected by argparse."""
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py"), "--acl", "world"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0
        assert "invalid choice" in result.stderr


class TestParseArgs:
    """Tests for flag parsing."""

    def test_unset_flags_are_none(self):
        overrides = upload.flag_overrides(upload.parse_args([]))

        assert set(overrides.values()) == {None}

    def test_repeated_exclude(self):
        args = upload.parse_args(["-e", "build/**/*.map", "--exclude", "build/tmp/**"])

        assert upload.flag_overrides(args)["exclude"] == ["build/**/*.map", "build/tmp/**"]

    def test_acl_maps_to_access(self):
        args = upload.parse_args(["--acl", "public", "--compress"])

        overrides = upload.flag_overrides(args)
        assert overrides["access"] == "public"
        assert overrides["compress"] is True


class TestMain:
    """Tests for main() with a patched storage client."""

    @pytest.fixture
    def build_tree(self, tmp_path, monkeypatch):
        for name in ("PLUGIN_BUCKET", "GCS_BUCKET", "PLUGIN_SOURCE", "PLUGIN_ACL"):
            monkeypatch.delenv(name, raising=False)
        (tmp_path / "build").mkdir()
        (tmp_path / "build" / "index.html").write_text("<html></html>")
        monkeypatch.chdir(tmp_path)
        return tmp_path

    @patch("gcs_deploy.uploader.context.create_storage_client")
    def test_dry_run_prints_summary(self, mock_create, build_tree, capsys):
        client = MagicMock()
        mock_create.return_value = client

        code = upload.main(
            ["--bucket", "assets", "--source", "build/**", "--strip-prefix", "build/", "--dry-run"]
        )

        assert code == 0
        client.bucket.return_value.blob.assert_not_called()
        client.close.assert_called_once()
        out = capsys.readouterr().out
        assert "Would upload: 1" in out
        assert "gs://assets/index.html" in out

    @patch("gcs_deploy.uploader.context.create_storage_client")
    def test_flags_override_deploy_file(self, mock_create, build_tree, capsys):
        mock_create.return_value = MagicMock()
        config_file = build_tree / "deploy.yaml"
        config_file.write_text(
            'version: "1.0"\nbucket: from-file\nsource: build/**\ndry_run: true\n'
        )

        code = upload.main(["--config", str(config_file), "--bucket", "from-flag"])

        assert code == 0
        mock_create.return_value.bucket.assert_called_once_with("from-flag")
        assert "Upload Summary (from-flag)" in capsys.readouterr().out

    @patch("gcs_deploy.uploader.context.create_storage_client")
    def test_metrics_file_written_on_failure(self, mock_create, build_tree, tmp_path):
        mock_create.return_value = MagicMock()
        metrics_file = tmp_path / "gcs_deploy.prom"

        code = upload.main(
            [
                "--bucket",
                "assets",
                "--source",
                "build/[oops",
                "--metrics-file",
                str(metrics_file),
            ]
        )

        assert code == 1
        assert metrics_file.exists()
