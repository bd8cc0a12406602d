"""Tests for distbuild.config."""

from pathlib import Path

import pytest

from distbuild.config import DEFAULT_IMPLICIT_BASE, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ["DISTBUILD_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN", "DISTBUILD_IMAGE_NAME"]:
        monkeypatch.delenv(var, raising=False)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")

        assert config.source_dir == Path("src")
        assert config.log_dir == Path("log")
        assert config.version == "debian10-bootstrap"
        assert config.github_org == "danos"
        assert config.implicit_base == DEFAULT_IMPLICIT_BASE

    def test_file_values_merge_over_defaults(self, tmp_path):
        path = tmp_path / "build.config.yaml"
        path.write_text(
            "source_dir: /srv/src\n"
            "local_image: true\n"
            "github:\n"
            "  org: example\n"
            "implicit_base:\n"
            "  - [base-files]\n"
        )
        config = load_config(path)

        assert config.source_dir == Path("/srv/src")
        assert config.local_image is True
        assert config.github_org == "example"
        assert config.github_token is None
        assert config.implicit_base == [["base-files"]]
        assert config.package_dir == Path("pkg")

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "build.config.yaml"
        path.write_text("github:\n  token: from-file\n")
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        monkeypatch.setenv("DISTBUILD_IMAGE_NAME", "local/builder")

        config = load_config(path)

        assert config.github_token == "from-env"
        assert config.image_name == "local/builder"

    def test_placeholder_tokens_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISTBUILD_GITHUB_TOKEN", "your_token_here")
        assert load_config(tmp_path / "missing.yaml").github_token is None

    def test_invalid_implicit_base(self, tmp_path):
        path = tmp_path / "build.config.yaml"
        path.write_text("implicit_base: base-files\n")
        with pytest.raises(ValueError, match="implicit_base"):
            load_config(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "build.config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)
