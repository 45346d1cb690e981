"""
Configuration module for GitHub Agile Dashboard
Contains all configurable constants and the resolved runtime settings value.
"""

import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Tuple


# ============================================================================
# GITHUB API
# ============================================================================

GITHUB_API_URL: str = "https://api.github.com"

# Items requested per page (GitHub maximum)
PER_PAGE: int = 100

# Safety limit to prevent infinite pagination loops (50,000 items)
MAX_PAGES: int = 500


# ============================================================================
# CACHE
# ============================================================================

DEFAULT_CACHE_DIR: str = str(Path.home() / ".gad" / "cache")


# ============================================================================
# INTERACTIVE PROMPT
# ============================================================================

PROMPT: str = "gad> "

EXIT_COMMANDS = ('quit', 'exit')


# ============================================================================
# RUNTIME SETTINGS
# ============================================================================

@dataclass(frozen=True)
class DashboardConfig:
    """Resolved settings handed to the loader and the dashboard"""
    owner: str
    repo: str
    user: str
    token: str = ''
    cache_dir: str = DEFAULT_CACHE_DIR

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"


# ============================================================================
# ENVIRONMENT VARIABLE HELPERS
# ============================================================================

def lookup(command: list) -> str:
    """Run a shell lookup (git config...) and return its output, or '' on failure."""
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=True)
        return result.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return ''


_REMOTE_PATTERNS = [
    re.compile(r'^git@github\.com:(?P<owner>[^/]+)/(?P<repo>.+?)(?:\.git)?$', re.IGNORECASE),
    re.compile(r'^(?:https?|ssh|git)://(?:[^@/]+@)?github\.com/(?P<owner>[^/]+)/(?P<repo>.+?)(?:\.git)?/?$', re.IGNORECASE),
]


def parse_remote(url: str) -> Tuple[Optional[str], Optional[str]]:
    """Extract (owner, repo) from a GitHub remote URL, (None, None) if it isn't one."""
    for pattern in _REMOTE_PATTERNS:
        match = pattern.match(url.strip()) if url else None
        if match:
            return match.group('owner'), match.group('repo')
    return None, None


def get_default_remote() -> Tuple[Optional[str], Optional[str]]:
    """Get owner and repo from the current directory's origin remote."""
    return parse_remote(lookup(['git', '-C', '.', 'config', '--get', 'remote.origin.url']))


def get_github_user() -> str:
    """Get GitHub user from git config with environment fallbacks."""
    return (
        lookup(['git', 'config', '--global', 'github.user'])
        or os.getenv('GITHUB_USER', '')
        or os.getenv('USER', '')
    )


def get_github_token() -> str:
    """Get GitHub token from git config or environment variables."""
    return lookup(['git', 'config', '--global', 'github.token']) or os.getenv('GITHUB_TOKEN', '')


def get_cache_dir() -> str:
    """Get cache directory from environment variables with fallback."""
    return os.getenv('GAD_CACHE_DIR', DEFAULT_CACHE_DIR)


# ============================================================================
# CONFIGURATION VALIDATION
# ============================================================================

def validate_configuration(config: DashboardConfig) -> Dict[str, Any]:
    """Validate configuration and return status."""
    config_status = {
        'repository': bool(config.owner and config.repo),
        'user': bool(config.user),
        'github_token': bool(config.token),
        'issues': []
    }

    if not config_status['repository']:
        config_status['issues'].append('Repository owner and name are required (use --owner and --repo)')

    # Review queries need a user, anonymous access still works for the rest
    if not config_status['user']:
        config_status['issues'].append('No GitHub user found - the review command will be empty')

    if not config_status['github_token']:
        config_status['issues'].append('No GitHub token set - requests are anonymous and heavily rate limited')

    return config_status


__all__ = [
    'GITHUB_API_URL',
    'PER_PAGE',
    'MAX_PAGES',
    'DEFAULT_CACHE_DIR',
    'PROMPT',
    'EXIT_COMMANDS',
    'DashboardConfig',
    'lookup',
    'parse_remote',
    'get_default_remote',
    'get_github_user',
    'get_github_token',
    'get_cache_dir',
    'validate_configuration'
]
