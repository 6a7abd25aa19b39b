"""Shared fixtures: a recording fake of the commits API and isolated config."""

import pytest

from clients.github_client import UpstreamFetchError
from configs.config import Config


def make_commit(sha, date, files=None, message="Update", author="Mona", login="octocat"):
    """Build a commit payload shaped like GET /repos/{repo}/commits/{sha}."""
    return {
        "sha": sha,
        "html_url": f"https://github.com/octocat/Hello-World/commit/{sha}",
        "commit": {
            "message": message,
            "author": {"name": author, "date": date},
            "committer": {"name": author, "date": date},
        },
        "author": {"login": login, "html_url": f"https://github.com/{login}"},
        "files": files or [],
    }


def make_file(filename, patch=None, sha="abc1234"):
    entry = {"filename": filename, "status": "modified", "sha": sha}
    if patch is not None:
        entry["patch"] = patch
    return entry


def list_entry(commit):
    """Reduce a full commit to the shape returned by the commit list endpoint."""
    return {"sha": commit["sha"], "commit": {"committer": commit["commit"]["committer"]}}


class FakeCommitsClient:
    """In-memory stand-in for GithubCommitsClient that records every call."""

    def __init__(self, commits=None, listing=None, error=None):
        # commits: newest-first, as the real endpoint returns them
        self.commits = {c["sha"]: c for c in (commits or [])}
        self.listing = listing if listing is not None else [list_entry(c) for c in (commits or [])]
        self.error = error
        self.calls = []
        self.closed = False

    def list_commits(self, repo, path, since, per_page=100):
        self.calls.append(("list_commits", repo, path, since, per_page))
        if self.error:
            raise self.error
        return self.listing

    def get_commit(self, repo, sha):
        self.calls.append(("get_commit", repo, sha))
        if sha not in self.commits:
            raise UpstreamFetchError(f"Not found: commit {repo}@{sha}", code="NOT_FOUND")
        return self.commits[sha]

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "METRICS_ENABLED", False)
    monkeypatch.setattr(Config, "CACHE_ROOT", str(tmp_path / "cache"))
    monkeypatch.setattr(Config, "CACHE_ENABLED", True)
    monkeypatch.setattr(Config, "CACHE_TTL_S", 604800)
    monkeypatch.setattr(Config, "GITHUB_TOKEN", None)
    monkeypatch.setattr(Config, "DIFF_MODE", "blob")
    monkeypatch.setattr(Config, "HTTP_CACHE_ENABLED", True)


@pytest.fixture
def readme_commits():
    """Two commits touching README.md; B is newer than A."""
    a = make_commit("a" * 40, "2020-01-02T10:00:00Z", [make_file("README.md", "@@ -1 +1 @@\n-Hello\n+Hello World", sha="1111111")], message="First")
    b = make_commit("b" * 40, "2020-01-05T10:00:00Z", [make_file("README.md", "@@ -1 +1,2 @@\n Hello World\n+Again", sha="2222222")], message="Second")
    return [b, a]
