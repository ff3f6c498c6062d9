"""Tests for deploy file loading and validation."""

from pathlib import Path

import pytest

from gcs_deploy.utils.config_loader import (
    ConfigIssue,
    load_config,
    load_overrides,
    to_overrides,
    validate_config,
)
from gcs_deploy.utils.errors import ConfigError

VALID_DEPLOY_FILE = """
version: "1.0"
bucket: site-assets
source: build/**
target: releases/v1
strip_prefix: build/
exclude:
  - build/**/*.map
acl: public
compress: true
cache_control: public, max-age=3600
"""


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_valid_yaml(self, tmp_path: Path):
        config_file = tmp_path / "deploy.yaml"
        config_file.write_text(VALID_DEPLOY_FILE)

        config = load_config(config_file)

        assert config["bucket"] == "site-assets"
        assert config["exclude"] == ["build/**/*.map"]
        assert config["compress"] is True

    def test_load_nonexistent_file(self):
        with pytest.raises(ConfigError, match="not found"):
            load_config("nonexistent.yaml")

    def test_load_empty_file(self, tmp_path: Path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        with pytest.raises(ConfigError, match="empty"):
            load_config(config_file)

    def test_load_invalid_yaml(self, tmp_path: Path):
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text('version: "1.0"\nexclude: [unclosed bracket\n')

        with pytest.raises(ConfigError, match="not valid YAML"):
            load_config(config_file)

    def test_load_non_mapping(self, tmp_path: Path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(config_file)

    def test_load_directory_raises_error(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not a file"):
            load_config(tmp_path)


class TestValidateConfig:
    """Tests for validate_config."""

    def test_valid_config(self, tmp_path: Path):
        config_file = tmp_path / "deploy.yaml"
        config_file.write_text(VALID_DEPLOY_FILE)

        assert validate_config(load_config(config_file)) == []

    def test_missing_version(self):
        issues = validate_config({"bucket": "a"})

        assert [i.field for i in issues] == ["version"]

    def test_unsupported_version(self):
        issues = validate_config({"version": "2.0"})

        assert issues[0].field == "version"
        assert issues[0].value == "2.0"

    def test_unknown_field(self):
        issues = validate_config({"version": "1.0", "region": "eu"})

        assert issues[0].field == "region"

    def test_wrong_types(self):
        issues = validate_config({"version": "1.0", "bucket": 12, "compress": "yes"})

        fields = {i.field for i in issues}
        assert fields == {"bucket", "compress"}

    def test_invalid_acl(self):
        issues = validate_config({"version": "1.0", "acl": "public-read"})

        assert issues[0].field == "acl"

    def test_exclude_must_be_list_of_strings(self):
        issues = validate_config({"version": "1.0", "exclude": ["ok/**", ""]})

        assert [i.field for i in issues] == ["exclude[1]"]

    def test_exclude_mapping_rejected(self):
        issues = validate_config({"version": "1.0", "exclude": {"a": 1}})

        assert issues[0].field == "exclude"

    def test_issue_str(self):
        assert str(ConfigIssue("acl", "Invalid", "x")) == "acl: Invalid (got: x)"
        assert str(ConfigIssue("version", "Missing required field")) == (
            "version: Missing required field"
        )


class TestOverrides:
    """Tests for mapping deploy files onto DeployConfig settings."""

    def test_to_overrides_maps_acl(self):
        overrides = to_overrides({"version": "1.0", "acl": "public", "dry_run": True})

        assert overrides == {"access": "public", "dry_run": True}

    def test_single_exclude_string(self):
        assert to_overrides({"exclude": "build/**/*.map"}) == {"exclude": ["build/**/*.map"]}

    def test_load_overrides_raises_on_issues(self, tmp_path: Path):
        config_file = tmp_path / "deploy.yaml"
        config_file.write_text('version: "1.0"\nacl: everyone\n')

        with pytest.raises(ConfigError, match="acl"):
            load_overrides(config_file)

    def test_load_overrides(self, tmp_path: Path):
        config_file = tmp_path / "deploy.yaml"
        config_file.write_text(VALID_DEPLOY_FILE)

        overrides = load_overrides(config_file)

        assert overrides["bucket"] == "site-assets"
        assert overrides["access"] == "public"
        assert overrides["cache_control"] == "public, max-age=3600"
