import os
from typing import Dict, Any

class Config:
	"""Configuration for the file diff service."""

	# GitHub REST Configuration
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	# Upstream errors are surfaced, not retried, unless explicitly enabled
	HTTP_RETRIES = int(os.getenv("HTTP_RETRIES", "0"))
	# Single page only; older history beyond the cap is omitted
	COMMITS_PER_PAGE = int(os.getenv("COMMITS_PER_PAGE", "100"))

	# Output
	DIFF_MODE = os.getenv("DIFF_MODE", "blob")

	# Cache config (one TTL for both storage and transport caching)
	CACHE_ROOT = os.getenv("CACHE_ROOT", ".cache/file_diff")
	CACHE_ENABLED = bool(int(os.getenv("CACHE_ENABLED", "1")))
	CACHE_TTL_S = int(os.getenv("CACHE_TTL_S", "604800"))
	HTTP_CACHE_ENABLED = bool(int(os.getenv("HTTP_CACHE_ENABLED", "1")))

	# Observability
	METRICS_ROOT = os.getenv("METRICS_ROOT", ".cache/file_diff/metrics")
	METRICS_ENABLED = bool(int(os.getenv("METRICS_ENABLED", "1")))

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"retries": cls.HTTP_RETRIES,
			"per_page": cls.COMMITS_PER_PAGE,
		}

	@classmethod
	def get_cache_config(cls) -> Dict[str, Any]:
		return {
			"root_dir": cls.CACHE_ROOT,
			"enabled": cls.CACHE_ENABLED,
			"ttl_s": cls.CACHE_TTL_S,
		}

	@classmethod
	def get_http_cache_config(cls) -> Dict[str, Any]:
		"""Get transport-level caching configuration.

		Returns:
			Mapping with the enabled flag and the freshness window in seconds.
		"""
		return {
			"enabled": cls.HTTP_CACHE_ENABLED,
			"ttl_s": cls.CACHE_TTL_S,
		}

	@classmethod
	def observability(cls) -> Dict[str, Any]:
		return {
			"metrics_root": cls.METRICS_ROOT,
			"metrics_enabled": cls.METRICS_ENABLED,
		}
