#!/usr/bin/env python3
"""
Milestone model: a group of issues and pull requests sharing one GitHub milestone
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, List, Mapping, Optional, Tuple

from models import Issue, MalformedRecord
from utils import format_points
from utils_dates import parse_due_date, format_due_date


@dataclass(frozen=True)
class Milestone:
    """Milestone with its member items in API order"""
    id: int
    title: str
    state: str = 'open'
    due_on: Optional[date] = None
    items: Tuple[Issue, ...] = ()

    @classmethod
    def from_record(cls, milestone: Mapping[str, Any], items=()) -> 'Milestone':
        """
        Build a milestone from the 'milestone' object of a raw issue record.

        Raises:
            MalformedRecord: number is missing or not an integer
        """
        try:
            number = int(milestone['number'])
        except (KeyError, TypeError, ValueError):
            raise MalformedRecord("Milestone is missing its number", milestone)

        return cls(
            id=number,
            title=str(milestone.get('title') or f"Milestone {number}"),
            state=str(milestone.get('state') or 'open').lower(),
            due_on=parse_due_date(milestone.get('due_on')),
            items=tuple(items),
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state == 'open'

    def sort_key(self) -> Tuple[bool, date]:
        """Due date ascending, undated milestones last"""
        return (self.due_on is None, self.due_on or date.max)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @property
    def issues(self) -> List[Issue]:
        return [item for item in self.items if not item.is_pull_request]

    @property
    def pull_requests(self) -> List[Issue]:
        return [item for item in self.items if item.is_pull_request]

    @property
    def closed_count(self) -> int:
        return sum(1 for item in self.items if item.is_closed)

    @property
    def total_points(self) -> float:
        return sum(item.estimate for item in self.issues if item.estimate is not None)

    @property
    def done_points(self) -> float:
        return sum(item.estimate for item in self.issues if item.estimate is not None and item.is_closed)

    @property
    def progress(self) -> float:
        """Share of estimated points done, falling back to closed item count"""
        if self.total_points:
            return self.done_points / self.total_points
        if self.items:
            return self.closed_count / len(self.items)
        return 0.0

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def header(self) -> str:
        header = (
            f"📅 {self.title} ({format_due_date(self.due_on)}, {self.state})"
            f" {self.closed_count}/{len(self.items)} closed,"
            f" {format_points(self.done_points)}/{format_points(self.total_points)} pts"
            f" ({self.progress:.0%})"
        )
        return header

    def display(self) -> str:
        """Header followed by one line per member, in insertion order"""
        lines = [self.header()]
        lines.extend(f"  {item.display()}" for item in self.items)
        return "\n".join(lines)

    def display_changelog(self) -> str:
        """Markdown changelog of merged pull requests and closed issues"""
        merged = [item for item in self.pull_requests if item.merged]
        closed = [item for item in self.issues if item.is_closed]

        lines = [f"## {self.title}", ""]
        if merged:
            lines.append("### Merged pull requests")
            lines.append("")
            lines.extend(f"- #{item.number} {item.title}" for item in merged)
            lines.append("")
        if closed:
            lines.append("### Closed issues")
            lines.append("")
            lines.extend(f"- #{item.number} {item.title}" for item in closed)
            lines.append("")
        if not merged and not closed:
            lines.append("_Nothing merged or closed yet._")
            lines.append("")

        return "\n".join(lines).rstrip("\n")
