#!/usr/bin/env python3
"""
GitHub Issues Data Loader

Fetches every issue and pull request of a repository through the paginated REST
API, merges review requests and review decisions into the pull request records,
and caches API responses on disk so unchanged pages are served from the cache.
"""
# /// script
# requires-python = ">=3.8"
# dependencies = [
#     "requests",
#     "rich",
# ]
# ///

import hashlib
import pickle
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests
from rich.console import Console
from rich.live import Live
from rich.text import Text

from config import DashboardConfig, GITHUB_API_URL, PER_PAGE, MAX_PAGES


class StatusDisplay:
    """Handle status updates with a rich live line"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.live = None
        self.current_status = ""

    def start(self, initial_message: str = "Starting..."):
        """Start the status display"""
        self.current_status = initial_message
        text = Text(initial_message, style="cyan")
        self.live = Live(text, console=self.console, refresh_per_second=4, transient=True)
        self.live.start()

    def update(self, message: str, style: str = "cyan"):
        """Update the status message"""
        self.current_status = message
        if self.live:
            self.live.update(Text(message, style=style))

    def stop(self, final_message: str = None):
        """Stop the status display"""
        if self.live:
            self.live.stop()
            self.live = None
        self.current_status = ""
        if final_message:
            self.console.print(final_message)

    def print(self, message: str, style: str = None):
        """Print a message without disrupting status display"""
        self.console.print(Text(message, style=style or ""))


class GitHubIssueLoader:
    """Load all issues and pull requests of one repository"""

    def __init__(self, config: DashboardConfig,
                 on_load: Optional[Callable[[List[Dict]], Any]] = None,
                 status: Optional[StatusDisplay] = None,
                 session: Optional[requests.Session] = None):
        self.config = config
        self.owner = config.owner
        self.repo = config.repo
        self.on_load = on_load
        self.base_url = GITHUB_API_URL
        self.status = status or StatusDisplay()

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'github-agile-dashboard',
        })
        # Static user + token pair, sent as HTTP basic auth
        if config.token:
            self.session.auth = (config.user, config.token)

        # Responses are revalidated with ETags, so entries never expire
        self.cache_dir = Path(config.cache_dir) / self.owner / self.repo
        self.cache_stats = {'hits': 0, 'saves': 0, 'requests': 0}
        self._cache_error_shown = False

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _get_cache_key(self, url: str, params: Dict = None) -> str:
        """Generate a cache key for a request"""
        # Sort params to ensure consistent key generation
        params_str = ""
        if params:
            sorted_params = sorted(params.items())
            params_str = "&".join(f"{k}={v}" for k, v in sorted_params)
        key_data = f"{url}?{params_str}"
        return hashlib.md5(key_data.encode()).hexdigest()

    def _get_cache_file(self, cache_key: str) -> Path:
        """Get the cache file path for a given key with subdirectory structure"""
        # Subdirectory on the first two characters to avoid OS file limits
        return self.cache_dir / cache_key[:2] / f"{cache_key}.cache"

    def _report_cache_error(self, action: str, error: Exception):
        # Only show cache errors once to avoid spam
        if not self._cache_error_shown:
            self._cache_error_shown = True
            self.status.print(f"⚠️  Cache {action} failed: {error}", style="yellow")

    def _save_to_cache(self, cache_key: str, etag: Optional[str], data: Any):
        """Save a response body and its ETag to the cache"""
        try:
            cache_file = self._get_cache_file(cache_key)
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(cache_file, 'wb') as f:
                pickle.dump({'etag': etag, 'data': data}, f)
            self.cache_stats['saves'] += 1
        except (OSError, pickle.PickleError) as e:
            # Cache failures shouldn't break loading
            self._report_cache_error("save", e)

    def _load_from_cache(self, cache_key: str) -> Optional[Dict]:
        """Load a cache entry ({'etag', 'data'}), None when absent or unreadable"""
        cache_file = self._get_cache_file(cache_key)
        if not cache_file.exists():
            return None
        try:
            with open(cache_file, 'rb') as f:
                entry = pickle.load(f)
        except Exception as e:
            # Unreadable entries count as a miss
            self._report_cache_error("load", e)
            return None
        if not isinstance(entry, dict) or 'data' not in entry:
            return None
        return entry

    def clear_cache(self):
        """Clear all cached data for this repository"""
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
            self.status.print(f"✅ Cache cleared for {self.owner}/{self.repo}", style="green")
        else:
            self.status.print(f"ℹ️  No cache found for {self.owner}/{self.repo}")

    def _show_cache_stats(self):
        """Show cache usage statistics"""
        hits = self.cache_stats['hits']
        total = self.cache_stats['requests']
        if total:
            self.status.print(f"💾 {hits}/{total} responses unchanged since last load", style="blue")

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _wait_for_rate_limit(self, response: requests.Response):
        reset_time = int(response.headers.get('X-RateLimit-Reset', 0))
        sleep_time = max(reset_time - time.time(), 0) + 1

        for i in range(int(sleep_time)):
            remaining = int(sleep_time - i)
            self.status.update(f"⏳ Rate limited - waiting {remaining}s before retry...", style="yellow")
            time.sleep(1)

    def _make_request(self, url: str, params: Dict = None) -> Any:
        """Make GitHub API request with ETag caching and rate limiting"""
        cache_key = self._get_cache_key(url, params)
        cached = self._load_from_cache(cache_key)
        headers = {}
        if cached is not None and cached.get('etag'):
            headers['If-None-Match'] = cached['etag']

        self.cache_stats['requests'] += 1
        response = self.session.get(url, params=params, headers=headers)

        # 403 is either rate limiting or a permissions error
        if response.status_code == 403 and 'rate limit' in response.text.lower():
            self._wait_for_rate_limit(response)
            response = self.session.get(url, params=params, headers=headers)

        if response.status_code == 304 and cached is not None:
            self.cache_stats['hits'] += 1
            return cached['data']

        # Validation failures (pagination limits, etc.) stop pagination
        if response.status_code == 422:
            self.status.print(f"⚠️  API request failed with 422: {url} - {params}", style="yellow")
            return None

        if response.status_code >= 400:
            response.raise_for_status()

        data = response.json()
        self._save_to_cache(cache_key, response.headers.get('ETag'), data)
        return data

    def _fetch_all_pages(self, url: str, params: Dict = None, label: str = "items") -> List[Dict]:
        """Fetch every page of a list endpoint using page-based pagination"""
        results = []
        page = 1

        while True:
            if page > MAX_PAGES:
                self.status.print(f"🛑 Reached page limit ({MAX_PAGES}), stopping pagination", style="yellow")
                break

            self.status.update(f"📥 Fetching {label} page {page}... ({len(results)} so far)")
            page_params = dict(params or {}, per_page=PER_PAGE, page=page)
            batch = self._make_request(url, page_params)

            if not batch:
                break

            results.extend(batch)

            # Fewer than requested means this was the last page
            if len(batch) < PER_PAGE:
                break
            page += 1

        return results

    def fetch_issues(self) -> List[Dict]:
        """Fetch all issues and pull requests, in API order"""
        url = f"{self.base_url}/repos/{self.owner}/{self.repo}/issues"
        return self._fetch_all_pages(url, {'state': 'all', 'sort': 'created', 'direction': 'asc'}, "issues")

    def fetch_open_pull_requests(self) -> List[Dict]:
        """Fetch open pull requests (the issues API has no review requests)"""
        url = f"{self.base_url}/repos/{self.owner}/{self.repo}/pulls"
        return self._fetch_all_pages(url, {'state': 'open'}, "pull requests")

    def fetch_pr_reviews(self, pr_number: int) -> List[Dict]:
        """Fetch submitted reviews of a pull request, oldest first"""
        url = f"{self.base_url}/repos/{self.owner}/{self.repo}/pulls/{pr_number}/reviews"
        return self._fetch_all_pages(url, label=f"reviews of #{pr_number}")

    def attach_reviews(self, records: List[Dict]) -> List[Dict]:
        """Merge requested reviewers and reviews into the pull request records"""
        pull_requests = self.fetch_open_pull_requests()
        details = {pr['number']: pr for pr in pull_requests if 'number' in pr}

        enriched = []
        for record in records:
            if record.get('pull_request') and record.get('number') in details:
                record = record.copy()
                record['requested_reviewers'] = details[record['number']].get('requested_reviewers', [])
                record['reviews'] = self.fetch_pr_reviews(record['number'])
            enriched.append(record)
        return enriched

    # ------------------------------------------------------------------
    # Load cycle
    # ------------------------------------------------------------------

    def load(self) -> List[Dict]:
        """Fetch the full record list and hand it to the on_load callback"""
        self.status.start(f"🔄 Loading {self.owner}/{self.repo}...")
        try:
            records = self.fetch_issues()
            records = self.attach_reviews(records)
        finally:
            self.status.stop()

        self._show_cache_stats()
        if self.on_load is not None:
            self.on_load(records)
        return records

    def reset(self) -> List[Dict]:
        """Clear the repository cache, then load from scratch"""
        self.clear_cache()
        return self.load()
