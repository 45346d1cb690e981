#!/usr/bin/env python3
"""
Issue and pull request models built from raw GitHub API records
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional, Tuple

from utils import get_login, get_logins, get_label_names, parse_estimate, format_points


# Fields every raw record must carry
REQUIRED_FIELDS = ('number', 'title', 'state')

VALID_STATES = ('open', 'closed')

# Review decisions
NO_DECISION = 'none'
APPROVED = 'approved'
CHANGES_REQUESTED = 'changes-requested'

_REVIEW_DECISIONS = {
    'APPROVED': APPROVED,
    'CHANGES_REQUESTED': CHANGES_REQUESTED,
    'CHANGES-REQUESTED': CHANGES_REQUESTED,
}

# Raw record shape as delivered by the loader (GitHub issues API, with
# 'requested_reviewers' and 'reviews' merged in for pull requests)
RawRecord = Mapping[str, Any]


class MalformedRecord(ValueError):
    """Exception raised when a raw record is missing a required field"""

    def __init__(self, message: str, record: Any = None):
        super().__init__(message)
        self.record = record


@dataclass(frozen=True)
class Issue:
    """One GitHub issue, immutable once built"""
    number: int
    title: str
    state: str
    labels: FrozenSet[str] = frozenset()
    milestone_id: Optional[int] = None
    estimate: Optional[float] = None
    assignee: Optional[str] = None
    author: Optional[str] = None

    is_pull_request: ClassVar[bool] = False

    @property
    def is_open(self) -> bool:
        return self.state == 'open'

    @property
    def is_closed(self) -> bool:
        return self.state == 'closed'

    @property
    def has_estimate(self) -> bool:
        return self.estimate is not None

    def _one_line_title(self) -> str:
        # Titles may carry newlines or tabs
        return " ".join(self.title.split())

    def _icon(self) -> str:
        return "📝" if self.is_open else "✅"

    def _details(self) -> str:
        details = f" [{self.state}]"
        if self.estimate is not None:
            details += f" {format_points(self.estimate)} pts"
        if self.assignee:
            details += f" @{self.assignee}"
        return details

    def display(self) -> str:
        """Render the item as a single line"""
        return f"{self._icon()} #{self.number} {self._one_line_title()}{self._details()}"


@dataclass(frozen=True)
class PullRequest(Issue):
    """A pull request with its requested reviewers and their decisions"""
    requested_reviewers: FrozenSet[str] = frozenset()
    reviews: Tuple[Tuple[str, str], ...] = ()
    merged: bool = False

    is_pull_request: ClassVar[bool] = True

    @property
    def decisions(self) -> Dict[str, str]:
        return dict(self.reviews)

    def decision_for(self, user: str) -> str:
        """Latest review decision of a user, 'none' if they haven't decided"""
        wanted = user.casefold()
        for reviewer, decision in self.reviews:
            if reviewer.casefold() == wanted:
                return decision
        return NO_DECISION

    def is_awaiting_review_by(self, user: str) -> bool:
        """Requested (logins compare case-insensitively) and not yet decided"""
        wanted = user.casefold()
        requested = any(reviewer.casefold() == wanted for reviewer in self.requested_reviewers)
        return requested and self.decision_for(user) == NO_DECISION

    def _icon(self) -> str:
        if self.merged:
            return "🟣"
        return "🔀" if self.is_open else "❌"

    def review_status(self) -> str:
        decisions = self.decisions
        reviewers = sorted(set(self.requested_reviewers) | set(decisions))
        if not reviewers:
            return "no review requested"

        parts = []
        for reviewer in reviewers:
            decision = decisions.get(reviewer, NO_DECISION)
            if decision == APPROVED:
                parts.append(f"{reviewer} approved")
            elif decision == CHANGES_REQUESTED:
                parts.append(f"{reviewer} requested changes")
            else:
                parts.append(f"{reviewer} pending")
        return ", ".join(parts)

    def display(self) -> str:
        state = "merged" if self.merged else self.state
        line = f"{self._icon()} #{self.number} {self._one_line_title()} [{state}]"
        if self.author:
            line += f" by @{self.author}"
        return f"{line} (review: {self.review_status()})"


# ============================================================================
# RECORD PARSING
# ============================================================================

def is_pull_request_record(record: RawRecord) -> bool:
    """GitHub's issues API marks pull requests with a 'pull_request' key"""
    return bool(record.get('pull_request'))


def get_milestone_id(record: RawRecord) -> Optional[int]:
    """
    Extract the milestone reference of a raw record.

    Returns:
        Milestone number, or None when the record has no milestone

    Raises:
        MalformedRecord: milestone present but without a usable number
    """
    milestone = record.get('milestone')
    if not milestone:
        return None

    number = milestone.get('number') if isinstance(milestone, Mapping) else milestone
    try:
        return int(number)
    except (TypeError, ValueError):
        raise MalformedRecord(
            f"Record #{record.get('number')} has a milestone without a number", record
        )


def _parse_decisions(raw_reviews: Any) -> Tuple[Tuple[str, str], ...]:
    """Reduce reviews to the latest approving/requesting decision per reviewer"""
    decisions: Dict[str, str] = {}

    if isinstance(raw_reviews, Mapping):
        items = [(login, state) for login, state in raw_reviews.items()]
    else:
        items = [
            (get_login(review.get('user')), review.get('state'))
            for review in raw_reviews or []
            if isinstance(review, Mapping)
        ]

    for login, state in items:
        decision = _REVIEW_DECISIONS.get(str(state or '').upper())
        if login and decision:
            decisions[login] = decision

    return tuple(sorted(decisions.items()))


def _parse_estimate(record: RawRecord, label_names) -> Optional[float]:
    explicit = record.get('estimate')
    if explicit is not None:
        try:
            return float(explicit)
        except (TypeError, ValueError):
            raise MalformedRecord(
                f"Record #{record.get('number')} has a non-numeric estimate: {explicit!r}", record
            )
    return parse_estimate(label_names)


def from_record(record: RawRecord) -> Issue:
    """
    Normalize one raw record into an Issue or a PullRequest.

    Args:
        record: Issue dictionary from the GitHub API

    Returns:
        PullRequest when the record carries a 'pull_request' marker, Issue otherwise

    Raises:
        MalformedRecord: record is not a mapping, or number/title/state is missing or invalid
    """
    if not isinstance(record, Mapping):
        raise MalformedRecord(f"Expected an issue record, got {type(record).__name__}", record)

    missing = [field for field in REQUIRED_FIELDS if record.get(field) is None]
    if missing:
        raise MalformedRecord(f"Record is missing required fields: {', '.join(missing)}", record)

    try:
        number = int(record['number'])
    except (TypeError, ValueError):
        raise MalformedRecord(f"Record has a non-integer number: {record['number']!r}", record)

    state = str(record['state']).lower()
    if state not in VALID_STATES:
        raise MalformedRecord(f"Record #{number} has an unknown state: {record['state']!r}", record)

    label_names = get_label_names(record.get('labels'))
    fields = dict(
        number=number,
        title=str(record['title']),
        state=state,
        labels=frozenset(label_names),
        milestone_id=get_milestone_id(record),
        estimate=_parse_estimate(record, label_names),
        assignee=get_login(record.get('assignee')),
        author=get_login(record.get('user')),
    )

    if not is_pull_request_record(record):
        return Issue(**fields)

    pull_request = record.get('pull_request')
    merged = bool(record.get('merged') or record.get('merged_at')
                  or (isinstance(pull_request, Mapping) and pull_request.get('merged_at')))

    return PullRequest(
        requested_reviewers=frozenset(get_logins(record.get('requested_reviewers'))),
        reviews=_parse_decisions(record.get('reviews')),
        merged=merged,
        **fields
    )
