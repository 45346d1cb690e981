#!/usr/bin/env python3
"""
Shared utilities for GitHub issue processing
Contains login, label and story point helpers used by the models
"""

import re
from typing import Any, Iterable, List, Mapping, Optional


_ESTIMATE_PATTERNS = [
    re.compile(r'^(\d+(?:\.\d+)?)$'),
    re.compile(r'^(\d+(?:\.\d+)?)\s*(?:points?|pts?|sp)$', re.IGNORECASE),
    re.compile(r'^(?:sp|points?|estimate)\s*[:=]\s*(\d+(?:\.\d+)?)$', re.IGNORECASE),
]


def get_login(user: Any) -> Optional[str]:
    """
    Extract a login from a GitHub user payload.

    Args:
        user: User dictionary with a 'login' key, a plain login string, or None

    Returns:
        Login string, or None when the user is missing
    """
    if not user:
        return None
    if isinstance(user, Mapping):
        return user.get('login') or None
    return str(user)


def get_logins(users: Optional[Iterable[Any]]) -> List[str]:
    """Extract logins from a list of user payloads, skipping empty entries."""
    logins = []
    for user in users or []:
        login = get_login(user)
        if login:
            logins.append(login)
    return logins


def get_label_names(raw_labels: Any) -> List[str]:
    """
    Normalize labels from REST format (list of dicts with 'name') or a list of strings.

    Args:
        raw_labels: Labels as returned by the API

    Returns:
        List of label names in their original order
    """
    if not raw_labels:
        return []

    if isinstance(raw_labels, str):
        return [raw_labels]

    names = []
    for label in raw_labels:
        name = label.get('name') if isinstance(label, dict) else label
        if name:
            names.append(str(name))
    return names


def parse_estimate(label_names: Iterable[str]) -> Optional[float]:
    """
    Find a story point estimate in label names.

    Accepts labels like "3", "0.5", "5 points", "2 pts" or "sp:8".
    The first label that reads as an estimate wins.
    """
    for name in label_names:
        for pattern in _ESTIMATE_PATTERNS:
            match = pattern.match(name.strip())
            if match:
                return float(match.group(1))
    return None


def format_points(points: Optional[float]) -> str:
    """Format story points without a trailing .0 for whole numbers."""
    if points is None:
        return '?'
    if float(points).is_integer():
        return str(int(points))
    return f"{points:g}"
