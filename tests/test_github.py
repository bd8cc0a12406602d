"""Tests for distbuild.sources.github."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from distbuild.errors import AggregateCloneError, CloneError
from distbuild.sources.github import (
    Repository,
    clone_repositories,
    clone_repository,
    list_repositories,
)


def response(items, has_next):
    r = MagicMock()
    r.json.return_value = items
    r.links = {"next": {"url": "..."}} if has_next else {}
    return r


def repo_item(name, archived=False):
    return {
        "name": name,
        "clone_url": f"https://github.com/danos/{name}.git",
        "archived": archived,
    }


class TestListRepositories:
    """Tests for list_repositories."""

    def test_follows_pages(self):
        session = MagicMock()
        session.get.side_effect = [
            response([repo_item("a"), repo_item("b")], has_next=True),
            response([repo_item("c", archived=True)], has_next=False),
        ]

        repos = list_repositories("danos", token="secret", session=session)

        assert [r.name for r in repos] == ["a", "b", "c"]
        assert repos[2].archived is True
        pages = [call.kwargs["params"]["page"] for call in session.get.call_args_list]
        assert pages == [1, 2]
        headers = session.get.call_args_list[0].kwargs["headers"]
        assert headers["Authorization"] == "Bearer secret"

    def test_empty_org(self):
        session = MagicMock()
        session.get.return_value = response([], has_next=True)
        assert list_repositories("empty", session=session) == []


class TestCloneRepository:
    """Tests for clone_repository."""

    def test_clone_then_checkout(self, tmp_path):
        repo = Repository("a", "https://github.com/danos/a.git")
        with patch("distbuild.sources.github.subprocess.run") as run:
            clone_repository(repo, tmp_path, "2105")

        assert run.call_args_list[0].args[0] == ["git", "clone", repo.clone_url, "a"]
        assert run.call_args_list[1].args[0] == ["git", "checkout", "2105"]
        assert run.call_args_list[1].kwargs["cwd"] == str(tmp_path / "a")

    def test_missing_ref_removes_clone(self, tmp_path):
        repo = Repository("a", "https://github.com/danos/a.git")

        def fake_run(cmd, cwd, check):
            if cmd[1] == "clone":
                (tmp_path / "a").mkdir()
                return MagicMock(returncode=0)
            raise subprocess.CalledProcessError(1, cmd)

        with patch("distbuild.sources.github.subprocess.run", side_effect=fake_run):
            with pytest.raises(CloneError, match="did not exist"):
                clone_repository(repo, tmp_path, "2105")

        assert not (tmp_path / "a").exists()


class TestCloneRepositories:
    """Tests for clone_repositories."""

    def test_requires_ref(self, tmp_path):
        with pytest.raises(ValueError, match="git ref"):
            clone_repositories(tmp_path, ref="", org="danos")

    def test_skips_archived_and_aggregates_failures(self, tmp_path):
        repos = [
            Repository("a", "url-a"),
            Repository("old", "url-old", archived=True),
            Repository("b", "url-b"),
            Repository("c", "url-c"),
        ]
        cloned = []

        def fake_clone(repo, into, ref):
            if repo.name == "b":
                raise CloneError("b", "network unreachable")
            cloned.append(repo.name)

        with patch("distbuild.sources.github.list_repositories", return_value=repos), \
                patch("distbuild.sources.github.clone_repository", side_effect=fake_clone):
            with pytest.raises(AggregateCloneError) as excinfo:
                clone_repositories(tmp_path / "src", ref="2105", org="danos")

        assert cloned == ["a", "c"]
        assert excinfo.value.units == ["b"]
        assert (tmp_path / "src").is_dir()
