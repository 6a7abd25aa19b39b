#!/usr/bin/env python3
"""Per-commit patch reconstruction into unified diff blocks.

Fetches each commit's detail oldest first, keeps the entry for the queried
file and wraps its patch in a git-style header. Commits without a patch for
the file (binary changes, renames without content, merges) are skipped.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from .diff_models import CommitDetail, CommitRef, DiffRecord

logger = logging.getLogger(__name__)

PLACEHOLDER_BLOB_SHA = "0000000"
# Mode is fixed; executable bit and mode changes are not represented
FILE_MODE = "100644"


def build_diff_header(path: str, blob_sha: Optional[str]) -> str:
    """Return the ``diff --git``/``index``/``---``/``+++`` header for one file."""
    sha = blob_sha or PLACEHOLDER_BLOB_SHA
    return (
        f"diff --git a/{path} b/{path}\n"
        f"index {sha}..{sha} {FILE_MODE}\n"
        f"--- a/{path}\n"
        f"+++ b/{path}\n"
    )


def build_diff_block(path: str, blob_sha: Optional[str], patch: str) -> str:
    return build_diff_header(path, blob_sha) + patch + "\n"


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def chronological(records: List[DiffRecord]) -> List[DiffRecord]:
    """Sort records oldest first when every record carries a parseable date.

    Replaying the listing in reverse is only oldest first when the upstream
    order is strictly by date, which does not hold after rebases or merges
    of older branches; the committer date is what readers of the diff see,
    so it decides the final order. The sort is stable, so commits sharing a
    timestamp keep replay order.
    Without complete dates the incoming order is kept.
    """
    dates = [_parse_date(r.date) for r in records]
    if any(d is None for d in dates) or any(d.tzinfo is None for d in dates):
        return list(records)
    order = sorted(range(len(records)), key=lambda i: dates[i])
    return [records[i] for i in order]


class DiffAssembler:
    def __init__(self, client) -> None:
        self.client = client

    def assemble(self, repo: str, file: str, commit_refs: Sequence[CommitRef]) -> List[DiffRecord]:
        """Build one DiffRecord per commit that carries a patch for ``file``.

        ``commit_refs`` is expected newest-first; commits are fetched one at
        a time in reverse (chronological) order.

        Raises:
            UpstreamFetchError: If a commit detail cannot be fetched
        """
        records: List[DiffRecord] = []
        for ref in reversed(list(commit_refs)):
            detail = CommitDetail.from_api(self.client.get_commit(repo, ref.sha))
            if not detail.sha:
                detail.sha = ref.sha
            record = self.record_for(detail, file)
            if record is None:
                logger.debug(f"Commit {ref.sha[:8]} has no patch for {file}; skipped")
                continue
            records.append(record)

        logger.debug(f"✓ Assembled {len(records)}/{len(commit_refs)} diff records for {repo}/{file}")
        return chronological(records)

    @staticmethod
    def record_for(detail: CommitDetail, file: str) -> Optional[DiffRecord]:
        entry = detail.file_entry(file)
        if entry is None or not entry.patch:
            return None
        return DiffRecord(
            sha=detail.sha,
            message=detail.message,
            date=detail.committer_date,
            url=detail.html_url,
            author=detail.author_name,
            author_url=detail.author_url,
            diff=build_diff_block(file, entry.sha, entry.patch),
        )
