"""Tests for patch reconstruction and per-commit aggregation."""

import pytest

from clients.github_client import UpstreamFetchError
from conftest import FakeCommitsClient, make_commit, make_file
from utils.commit_locator import CommitLocator
from utils.diff_assembler import DiffAssembler, build_diff_block, build_diff_header, chronological
from utils.diff_models import CommitRef, DiffRecord

REPO = "octocat/Hello-World"


def test_build_diff_header_with_blob_sha():
    assert build_diff_header("README.md", "1111111") == (
        "diff --git a/README.md b/README.md\n"
        "index 1111111..1111111 100644\n"
        "--- a/README.md\n"
        "+++ b/README.md\n"
    )


def test_build_diff_header_uses_placeholder_without_blob_sha():
    header = build_diff_header("docs/guide.md", None)
    assert "index 0000000..0000000 100644\n" in header
    assert header.startswith("diff --git a/docs/guide.md b/docs/guide.md\n")


def test_build_diff_block_appends_patch_and_newline():
    block = build_diff_block("a.txt", "", "@@ -1 +1 @@\n-x\n+y")
    assert block.endswith("+++ b/a.txt\n@@ -1 +1 @@\n-x\n+y\n")


def test_assemble_returns_oldest_first(readme_commits):
    client = FakeCommitsClient(readme_commits)
    refs = CommitLocator(client).locate(REPO, "README.md", "2020-01-01")
    assert [r.sha for r in refs] == ["b" * 40, "a" * 40]

    records = DiffAssembler(client).assemble(REPO, "README.md", refs)

    assert [r.sha for r in records] == ["a" * 40, "b" * 40]
    assert [r.message for r in records] == ["First", "Second"]
    # commit details are fetched sequentially, oldest first
    assert [c[2] for c in client.calls if c[0] == "get_commit"] == ["a" * 40, "b" * 40]


def test_assemble_record_metadata(readme_commits):
    client = FakeCommitsClient(readme_commits)
    refs = [CommitRef(sha=c["sha"]) for c in readme_commits]

    first = DiffAssembler(client).assemble(REPO, "README.md", refs)[0]

    assert first.author == "Mona"
    assert first.author_url == "https://github.com/octocat"
    assert first.url == f"https://github.com/octocat/Hello-World/commit/{'a' * 40}"
    assert first.date == "2020-01-02T10:00:00Z"
    assert "index 1111111..1111111 100644" in first.diff
    assert first.diff.endswith("+Hello World\n")


def test_assemble_skips_commits_without_patch_for_file():
    commits = [
        make_commit("c3", "2021-03-03T00:00:00Z", [make_file("README.md", "@@ -1 +1 @@\n-b\n+c")]),
        make_commit("c2", "2021-03-02T00:00:00Z", [make_file("logo.png")]),
        make_commit("c1", "2021-03-01T00:00:00Z", [make_file("other.txt", "@@ -0,0 +1 @@\n+x")]),
        make_commit("c0", "2021-02-28T00:00:00Z", [make_file("README.md", "@@ -1 +1 @@\n-a\n+b")]),
    ]
    client = FakeCommitsClient(commits)
    refs = [CommitRef(sha=c["sha"]) for c in commits]

    records = DiffAssembler(client).assemble(REPO, "README.md", refs)

    assert [r.sha for r in records] == ["c0", "c3"]


def test_assemble_matches_filename_exactly():
    commits = [make_commit("c1", "2021-03-01T00:00:00Z", [make_file("docs/README.md", "@@ -1 +1 @@\n-a\n+b")])]
    client = FakeCommitsClient(commits)

    records = DiffAssembler(client).assemble(REPO, "README.md", [CommitRef(sha="c1")])

    assert records == []


def test_assemble_uses_ref_sha_when_detail_lacks_one():
    commit = make_commit("c1", "2021-03-01T00:00:00Z", [make_file("a.py", "@@ -1 +1 @@\n-a\n+b")])
    del commit["sha"]
    client = FakeCommitsClient()
    client.commits = {"c1": commit}

    records = DiffAssembler(client).assemble(REPO, "a.py", [CommitRef(sha="c1")])

    assert records[0].sha == "c1"


def test_assemble_propagates_upstream_errors():
    client = FakeCommitsClient()

    with pytest.raises(UpstreamFetchError):
        DiffAssembler(client).assemble(REPO, "a.py", [CommitRef(sha="missing")])


def test_chronological_sorts_by_date_regardless_of_input_order():
    records = [
        DiffRecord(sha="new", message="", date="2022-01-03T00:00:00Z", diff=""),
        DiffRecord(sha="old", message="", date="2022-01-01T00:00:00+00:00", diff=""),
        DiffRecord(sha="mid", message="", date="2022-01-02T00:00:00Z", diff=""),
    ]

    assert [r.sha for r in chronological(records)] == ["old", "mid", "new"]


def test_chronological_keeps_order_without_dates():
    records = [
        DiffRecord(sha="x", message="", date=None, diff=""),
        DiffRecord(sha="y", message="", date="2022-01-01T00:00:00Z", diff=""),
    ]

    assert [r.sha for r in chronological(records)] == ["x", "y"]
