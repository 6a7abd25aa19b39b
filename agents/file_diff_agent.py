#!/usr/bin/env python3
"""File diff agent: what changed in one file of a repository since a date.

This agent locates the commits touching a path, rebuilds a unified diff
block per commit and aggregates the result, with a file-backed cache in
front of the whole pipeline.
"""

import functools
import json
import logging
import sys
from typing import Callable, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from cache.cache_backend import CacheBackend, NO_CHANGES_MARKER
from clients.github_client import GithubCommitsClient
from configs.config import Config
from utils.commit_locator import CommitLocator
from utils.diff_assembler import DiffAssembler
from utils.diff_endpoint import SERIALIZATION_MODES, handle_diff_request, make_wsgi_app
from utils.diff_models import DiffQuery, DiffResult
from utils.metrics import Timer, incr

# Set up logging
logger = logging.getLogger(__name__)


def storage_cached(resolve: Callable[[DiffQuery], DiffResult], backend: CacheBackend) -> Callable[[DiffQuery], DiffResult]:
	"""Wrap a resolver with the storage cache read/write path.

	A fresh entry short-circuits the resolver. Successful results, empty
	ones included, are written back; exceptions propagate and nothing is
	stored for them.
	"""
	@functools.wraps(resolve)
	def cached(query: DiffQuery) -> DiffResult:
		payload = backend.get(query)
		if payload is not None:
			try:
				result = DiffResult.from_json(payload)
				incr("cache.hit", repo=query.repo)
				logger.info(f"Cache hit for {query.describe()}")
				return result
			except ValidationError as e:
				logger.warning(f"Discarding malformed cache payload for {query.describe()}: {e}")

		incr("cache.miss", repo=query.repo)
		result = resolve(query)
		marker = NO_CHANGES_MARKER if result.status == "no_changes" else None
		if backend.put(query, result.to_json(), marker=marker):
			incr("cache.write", repo=query.repo, marker=marker or "content")
		return result

	return cached


class FileDiffAgent:
	"""Agent for aggregating per-commit diffs of a single file."""

	def __init__(self, client: Optional[GithubCommitsClient] = None, cache: Optional[CacheBackend] = None, per_page: Optional[int] = None):
		"""Initialize the file diff agent.

		Args:
			client: Upstream commits client. If None, one is built from Config.
			cache: Storage cache. If None and caching is enabled, one is built
				from Config; pass ``False`` to disable storage caching.
			per_page: Commit list page-size cap
		"""
		self.client = client or GithubCommitsClient()
		self.locator = CommitLocator(self.client, per_page=per_page)
		self.assembler = DiffAssembler(self.client)
		if cache is None and Config.get_cache_config()["enabled"]:
			cache = CacheBackend()
		self.cache = cache or None
		self.resolve = storage_cached(self.resolve_uncached, self.cache) if self.cache else self.resolve_uncached
		logger.info(f"File diff agent initialized (storage cache {'on' if self.cache else 'off'})")

	def resolve_uncached(self, query: DiffQuery) -> DiffResult:
		"""Run the locate + assemble pipeline for one query.

		Raises:
			UpstreamFetchError: If any upstream call fails
		"""
		with Timer("diff.resolve", repo=query.repo):
			refs = self.locator.locate(query.repo, query.file, query.since)
			if not refs:
				logger.info(f"No commits for {query.describe()}")
				return DiffResult(status="no_changes")

			incr("upstream.request", value=1 + len(refs), repo=query.repo)
			records = self.assembler.assemble(query.repo, query.file, refs)
			incr("diff.records", value=len(records), repo=query.repo)

		logger.info(f"✓ {len(records)} diff records from {len(refs)} commits for {query.describe()}")
		return DiffResult(
			status="changes" if records else "no_diff",
			records=records,
			first_sha=refs[-1].sha,
			last_sha=refs[0].sha,
			last_modified=refs[0].committed_at,
		)

	def close(self) -> None:
		"""Close the agent and cleanup resources."""
		self.client.close()
		logger.info("File diff agent closed")


def main():
	"""CLI entry point for the file diff agent."""
	import argparse

	load_dotenv()

	parser = argparse.ArgumentParser(
		description="File Diff Agent - Unified diffs of one file since a date",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.file_diff_agent query --repo octocat/Hello-World --file README --since 2020-01-01
  python -m agents.file_diff_agent query --repo o/r --file src/app.py --since 2024-05-01 --mode records
  python -m agents.file_diff_agent serve --port 8080
		"""
	)
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
	sub = parser.add_subparsers(dest="command", required=True)

	q = sub.add_parser("query", help="Resolve one diff query and print the JSON body")
	q.add_argument("--repo", required=True, help="Repository in owner/name format")
	q.add_argument("--file", required=True, help="Path within the repository")
	q.add_argument("--since", required=True, help="ISO date YYYY-MM-DD")
	q.add_argument("--mode", choices=SERIALIZATION_MODES, default=None)
	q.add_argument("--no-cache", action="store_true", help="Bypass the storage cache")

	srv = sub.add_parser("serve", help="Serve GET /api/diff with the reference WSGI server")
	srv.add_argument("--host", default="127.0.0.1")
	srv.add_argument("--port", type=int, default=8080)

	args = parser.parse_args()

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		logging.getLogger("urllib3").setLevel(logging.WARNING)
		logging.getLogger("clients.github_client").setLevel(logging.WARNING)

	agent = FileDiffAgent(cache=False if getattr(args, "no_cache", False) else None)
	try:
		if args.command == "query":
			response = handle_diff_request(
				{"repo": args.repo, "file": args.file, "since": args.since},
				agent.resolve,
				mode=args.mode,
			)
			print(json.dumps(response.body, indent=2))
			sys.exit(0 if response.status < 400 else 1)

		if args.command == "serve":
			from wsgiref.simple_server import make_server
			app = make_wsgi_app(agent.resolve)
			with make_server(args.host, args.port, app) as httpd:
				logger.info(f"Serving GET /api/diff on http://{args.host}:{args.port}")
				try:
					httpd.serve_forever()
				except KeyboardInterrupt:
					logger.info("Shutting down")
	finally:
		agent.close()


if __name__ == "__main__":
	main()
