#!/usr/bin/env python3
"""
Shared date utilities for GitHub milestone handling
"""

from datetime import date, datetime
from typing import Optional, Union


def parse_due_date(due_on: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Parse a milestone due date from the GitHub API.

    Args:
        due_on: ISO format string like "2024-06-01T07:00:00Z" or "2024-06-01",
            a date/datetime, or None

    Returns:
        Calendar date, or None when unset or unparseable
    """
    if not due_on:
        return None
    if isinstance(due_on, datetime):
        return due_on.date()
    if isinstance(due_on, date):
        return due_on

    try:
        return datetime.fromisoformat(due_on.replace('Z', '+00:00')).date()
    except (ValueError, AttributeError):
        return None


def format_due_date(due_on: Optional[date]) -> str:
    """Format a due date for display"""
    if due_on is None:
        return "no due date"
    return f"due {due_on.isoformat()}"
