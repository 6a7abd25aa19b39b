#!/usr/bin/env python3
"""Find the commits that touched a file since a given date."""

import logging
from typing import List, Optional

from configs.config import Config
from .diff_models import CommitRef, DiffQuery

logger = logging.getLogger(__name__)


class CommitLocator:
    def __init__(self, client, per_page: Optional[int] = None) -> None:
        self.client = client
        self.per_page = per_page or Config.get_github_config()["per_page"]

    def locate(self, repo: str, file: str, since: str) -> List[CommitRef]:
        """Return commit refs newest-first, as delivered upstream.

        An empty list means no commit touched the path in the window; a
        non-list upstream body is treated the same way. Commits past the
        first page are not fetched.

        Raises:
            ClientInputError: If any parameter is missing or malformed
            UpstreamFetchError: If the commit list cannot be fetched
        """
        query = DiffQuery.from_params({"repo": repo, "file": file, "since": since})
        data = self.client.list_commits(query.repo, query.file, query.since, per_page=self.per_page)
        if not isinstance(data, list):
            logger.warning(f"Commit list for {query.describe()} is not a list; treating as empty")
            return []

        refs = [CommitRef.from_api(item) for item in data if isinstance(item, dict) and item.get("sha")]
        if len(data) >= self.per_page:
            logger.info(f"Commit list for {query.describe()} hit the page cap ({self.per_page}); older commits omitted")
        logger.debug(f"✓ Located {len(refs)} commits for {query.describe()}")
        return refs
