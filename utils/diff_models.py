#!/usr/bin/env python3
"""Pydantic models for file diff queries, upstream commits and results."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field

NO_CHANGES_MESSAGE = "No changes since given date."
NO_DIFF_MESSAGE = "No diff available for this file."

ResultStatus = Literal["changes", "no_changes", "no_diff"]


class ClientInputError(Exception):
    """Raised when query parameters are missing or malformed."""
    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(details or message)
        self.message = message
        self.details = details


class DiffQuery(BaseModel):
    """(repo, file, since) triple; fully determines the cache key and upstream query."""

    repo: str = Field(..., description="Repository in 'owner/name' format")
    file: str = Field(..., description="Path within the repository")
    since: str = Field(..., description="ISO date YYYY-MM-DD")

    model_config = {"frozen": True}

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "DiffQuery":
        """Build a query from raw request parameters.

        Raises:
            ClientInputError: If a parameter is missing or malformed
        """
        repo = str(params.get("repo") or "").strip()
        file = str(params.get("file") or "").strip()
        since = str(params.get("since") or "").strip()
        if not repo or not file or not since:
            raise ClientInputError("Missing parameters")

        owner, _, name = repo.partition("/")
        if not owner or not name or "/" in name:
            raise ClientInputError("Invalid parameters", "repo must be in 'owner/name' format")
        try:
            datetime.strptime(since, "%Y-%m-%d")
        except ValueError:
            raise ClientInputError("Invalid parameters", "since must be an ISO date (YYYY-MM-DD)")
        return cls(repo=repo, file=file, since=since)

    def describe(self) -> str:
        return f"{self.repo}/{self.file} since {self.since}"


class CommitRef(BaseModel):
    """Commit identifier as listed by the commits endpoint."""

    sha: str
    committed_at: Optional[str] = Field(None, description="Committer timestamp (ISO 8601)")

    model_config = {"extra": "ignore"}

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CommitRef":
        committer = (data.get("commit") or {}).get("committer") or {}
        return cls(sha=data["sha"], committed_at=committer.get("date"))


class CommitFile(BaseModel):
    filename: str
    status: Optional[str] = None
    sha: Optional[str] = Field(None, description="Blob SHA of the file after the commit")
    patch: Optional[str] = None

    model_config = {"extra": "ignore"}


class CommitDetail(BaseModel):
    """Full commit payload, reduced to the fields the diff assembly needs."""

    sha: str
    message: str = ""
    author_name: Optional[str] = None
    author_url: Optional[str] = None
    committer_date: Optional[str] = None
    html_url: Optional[str] = None
    files: List[CommitFile] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CommitDetail":
        commit = data.get("commit") or {}
        author = commit.get("author") or {}
        committer = commit.get("committer") or {}
        # Top-level author is the linked GitHub account; null for unknown emails
        account = data.get("author") or {}
        files = [
            CommitFile.model_validate(f)
            for f in (data.get("files") or [])
            if isinstance(f, dict) and f.get("filename")
        ]
        return cls(
            sha=data.get("sha", ""),
            message=commit.get("message") or "",
            author_name=author.get("name") or account.get("login"),
            author_url=account.get("html_url"),
            committer_date=committer.get("date") or author.get("date"),
            html_url=data.get("html_url"),
            files=files,
        )

    def file_entry(self, path: str) -> Optional[CommitFile]:
        for entry in self.files:
            if entry.filename == path:
                return entry
        return None


class DiffRecord(BaseModel):
    """One commit's reconstructed diff for the queried file."""

    sha: str
    message: str
    date: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    author_url: Optional[str] = Field(None, alias="authorUrl")
    diff: str

    model_config = {"populate_by_name": True}


class DiffResult(BaseModel):
    """Mode-independent outcome of a resolved query; this is what gets cached."""

    status: ResultStatus
    records: List[DiffRecord] = Field(default_factory=list)
    first_sha: Optional[str] = Field(None, description="Oldest commit SHA in the window")
    last_sha: Optional[str] = Field(None, description="Newest commit SHA in the window")
    last_modified: Optional[str] = Field(None, description="Most recent commit date")

    @property
    def message(self) -> Optional[str]:
        if self.status == "no_changes":
            return NO_CHANGES_MESSAGE
        if self.status == "no_diff":
            return NO_DIFF_MESSAGE
        return None

    def blob(self) -> str:
        """Concatenate all per-commit diff blocks into one text."""
        return "".join("\n" + record.diff for record in self.records)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text: str) -> "DiffResult":
        return cls.model_validate_json(text)
