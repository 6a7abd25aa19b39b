#!/usr/bin/env python3
from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import time
from typing import Callable, Optional
from urllib.parse import quote

from configs.config import Config
from utils.diff_models import DiffQuery

logger = logging.getLogger(__name__)

NO_CHANGES_MARKER = "no-changes"
MAX_KEY_CHARS = 200


def cache_key(query: DiffQuery) -> str:
	"""Filesystem-safe key for a (repo, file, since) triple.

	Each part is percent-escaped with no safe characters, so the "+"
	separator can never appear inside a part and distinct triples never
	share a key.
	"""
	key = "+".join(quote(part, safe="") for part in (query.repo, query.file, query.since))
	if len(key) > MAX_KEY_CHARS:
		return "sha256-" + hashlib.sha256(key.encode("utf-8")).hexdigest()
	return key


class CacheEntry:
	def __init__(self, key: str, marker: Optional[str], written_at: float, payload: str) -> None:
		self.key = key
		self.marker = marker
		self.written_at = written_at
		self.payload = payload

	def age(self, now: float) -> float:
		return now - self.written_at


class CacheBackend:
	"""File-backed TTL cache for resolved diff payloads.

	Content results and "no changes" results are stored under separate
	files for the same key; the newest fresh one wins on read. Expired
	entries are ignored and overwritten on the next write, never deleted.
	"""

	def __init__(self, root_dir: str = None, ttl_s: int = None, clock: Callable[[], float] = time.time) -> None:
		cache_config = Config.get_cache_config()
		self.root_dir = root_dir or cache_config["root_dir"]
		self.ttl_s = cache_config["ttl_s"] if ttl_s is None else ttl_s
		self.clock = clock
		self.available = self._ensure_dir()

	def _ensure_dir(self) -> bool:
		try:
			os.makedirs(self.root_dir, exist_ok=True)
			return True
		except OSError as e:
			logger.warning(f"Cache directory {self.root_dir} unavailable, caching disabled: {e}")
			return False

	def path_for(self, query: DiffQuery, marker: Optional[str] = None) -> str:
		name = cache_key(query)
		if marker:
			name += "." + marker
		return os.path.join(self.root_dir, name + ".json")

	def _read(self, path: str) -> Optional[CacheEntry]:
		try:
			with open(path, "r", encoding="utf-8") as f:
				raw = json.load(f)
			return CacheEntry(raw["key"], raw.get("marker"), float(raw["written_at"]), raw["payload"])
		except FileNotFoundError:
			return None
		except (OSError, ValueError, KeyError, TypeError) as e:
			# Unreadable or partial entry counts as a miss
			logger.debug(f"Ignoring unreadable cache entry {path}: {e}")
			return None

	def get_entry(self, query: DiffQuery) -> Optional[CacheEntry]:
		if not self.available:
			return None
		now = self.clock()
		fresh = []
		for marker in (None, NO_CHANGES_MARKER):
			entry = self._read(self.path_for(query, marker))
			if entry is None:
				continue
			if entry.key != cache_key(query):
				logger.debug(f"Cache key mismatch in {self.path_for(query, marker)}; ignoring")
				continue
			if entry.age(now) > self.ttl_s:
				logger.debug(f"Cache entry for {query.describe()} expired ({int(entry.age(now))}s old)")
				continue
			fresh.append(entry)
		if not fresh:
			return None
		return max(fresh, key=lambda e: e.written_at)

	def get(self, query: DiffQuery) -> Optional[str]:
		"""Return the cached payload, or None on a miss or expired entry."""
		entry = self.get_entry(query)
		return entry.payload if entry else None

	def put(self, query: DiffQuery, payload: str, marker: Optional[str] = None) -> bool:
		"""Store a payload; returns False if the write could not be completed."""
		if not self.available:
			self.available = self._ensure_dir()
			if not self.available:
				return False
		path = self.path_for(query, marker)
		content = json.dumps({
			"key": cache_key(query),
			"marker": marker,
			"written_at": self.clock(),
			"payload": payload,
		})
		try:
			# Readers only ever see a complete file: temp write, fsync, rename
			tmp_fd, tmp_path = tempfile.mkstemp(dir=self.root_dir, prefix=".tmp_", suffix=".json")
			try:
				with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
					f.write(content)
					f.flush()
					os.fsync(f.fileno())
				os.replace(tmp_path, path)
			except BaseException:
				if os.path.exists(tmp_path):
					os.remove(tmp_path)
				raise
			return True
		except OSError as e:
			logger.warning(f"Cache write failed for {query.describe()}: {e}")
			return False
