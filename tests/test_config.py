"""Tests for configuration loading."""

import pytest

from hivemoot_watch.config import Config, load_config, parse_reasons, validate_repo
from hivemoot_watch.errors import ErrorCode, WatchError


class TestLoadConfig:
    """Test YAML config loading."""

    def test_defaults_without_file(self):
        config = load_config(None)

        assert config == Config()
        assert config.watch.poll_interval == 300
        assert config.watch.reasons == ["mention"]
        assert config.watch.state_file == ".hivemoot-watch.json"
        assert config.watch.once is False
        assert config.github.token is None

    def test_loads_yaml_with_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_GH_TOKEN", "abc123")
        path = tmp_path / "config.yaml"
        path.write_text(
            "github:\n"
            "  token: ${TEST_GH_TOKEN}\n"
            "watch:\n"
            "  repo: owner/repo\n"
            "  poll_interval: 60\n"
            "  reasons: [mention, comment]\n"
        )

        config = load_config(path)

        assert config.github.token.get_secret_value() == "abc123"
        assert config.watch.repo == "owner/repo"
        assert config.watch.poll_interval == 60
        assert config.watch.reasons == ["mention", "comment"]

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == Config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(WatchError) as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert exc_info.value.code is ErrorCode.CONFIG_NOT_FOUND

    def test_unset_env_var(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_UNSET_VAR", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("github:\n  token: ${TEST_UNSET_VAR}\n")

        with pytest.raises(WatchError) as exc_info:
            load_config(path)
        assert exc_info.value.code is ErrorCode.INVALID_CONFIG
        assert "TEST_UNSET_VAR" in str(exc_info.value)

    def test_invalid_interval(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("watch:\n  poll_interval: 0\n")

        with pytest.raises(WatchError) as exc_info:
            load_config(path)
        assert exc_info.value.code is ErrorCode.INVALID_CONFIG

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("watch: [unclosed\n")

        with pytest.raises(WatchError) as exc_info:
            load_config(path)
        assert exc_info.value.code is ErrorCode.INVALID_CONFIG


class TestHelpers:
    """Test repo validation and reason parsing."""

    def test_validate_repo_accepts_owner_repo(self):
        assert validate_repo("hivemoot/hivemoot") == "hivemoot/hivemoot"
        assert validate_repo("my.org/my_repo-2") == "my.org/my_repo-2"

    @pytest.mark.parametrize("repo", [None, "", "owner", "owner/repo/extra", "owner/re po"])
    def test_validate_repo_rejects_malformed(self, repo):
        with pytest.raises(WatchError) as exc_info:
            validate_repo(repo)
        assert "owner/repo" in str(exc_info.value)

    def test_parse_reasons(self):
        assert parse_reasons("mention, comment ,,author") == ["mention", "comment", "author"]
