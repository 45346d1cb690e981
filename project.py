#!/usr/bin/env python3
"""
Project aggregator

Owns every issue and pull request of one repository, groups them by milestone
and answers the sprint, backlog, review and estimation queries. A Project is
built once from a complete batch of raw records and never mutated afterwards;
reloading means building a new one.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from milestone import Milestone
from models import Issue, PullRequest, RawRecord, from_record


class NoOpenMilestone(LookupError):
    """Exception raised when no milestone is currently open"""
    pass


class Project:
    """Issues, pull requests and milestones of a single repository"""

    def __init__(self, records: Iterable[RawRecord]):
        issues: List[Issue] = []
        pull_requests: List[PullRequest] = []

        # Milestone payloads and members, keyed by id in first-seen order
        milestone_records: Dict[int, Mapping] = {}
        members: Dict[int, List[Issue]] = {}

        for record in records:
            item = from_record(record)

            if item.is_pull_request:
                pull_requests.append(item)
            else:
                issues.append(item)

            if item.milestone_id is None:
                continue

            if item.milestone_id not in milestone_records:
                raw = record.get('milestone')
                milestone_records[item.milestone_id] = raw if isinstance(raw, Mapping) else {'number': item.milestone_id}
                members[item.milestone_id] = []
            members[item.milestone_id].append(item)

        self._issues: Tuple[Issue, ...] = tuple(issues)
        self._pull_requests: Tuple[PullRequest, ...] = tuple(pull_requests)
        self._milestones: Mapping[int, Milestone] = MappingProxyType({
            milestone_id: Milestone.from_record(raw, members[milestone_id])
            for milestone_id, raw in milestone_records.items()
        })

    def __repr__(self):
        return (f"Project({len(self._issues)} issues, {len(self._pull_requests)} pull requests, "
                f"{len(self._milestones)} milestones)")

    @property
    def issues(self) -> Tuple[Issue, ...]:
        return self._issues

    @property
    def pull_requests(self) -> Tuple[PullRequest, ...]:
        return self._pull_requests

    @property
    def milestones(self) -> Mapping[int, Milestone]:
        return self._milestones

    # ------------------------------------------------------------------
    # Milestone queries
    # ------------------------------------------------------------------

    def get_sprints(self) -> List[Milestone]:
        """All open milestones, nearest due date first (undated last)"""
        open_milestones = [milestone for milestone in self._milestones.values() if milestone.is_open]
        # sorted() is stable, so ties keep first-seen order
        return sorted(open_milestones, key=Milestone.sort_key)

    def get_current_milestone(self) -> Milestone:
        """
        The sprint in progress: the open milestone with the nearest due date.

        Raises:
            NoOpenMilestone: the repository has no open milestone
        """
        sprints = self.get_sprints()
        if not sprints:
            raise NoOpenMilestone("No open milestone found")
        return sprints[0]

    def get_backlogs(self) -> List[Milestone]:
        """Open milestones other than the current sprint"""
        return self.get_sprints()[1:]

    def get_milestone(self, key: Union[int, str]) -> Milestone:
        """
        Find a milestone by id or by title (case insensitive).

        Raises:
            KeyError: no milestone matches
        """
        if isinstance(key, int) or str(key).isdigit():
            milestone = self._milestones.get(int(key))
            if milestone is not None:
                return milestone

        wanted = str(key).strip().lower()
        for milestone in self._milestones.values():
            if milestone.title.lower() == wanted:
                return milestone
        raise KeyError(key)

    # ------------------------------------------------------------------
    # Item queries
    # ------------------------------------------------------------------

    def get_pull_requests_awaiting_review(self, user: str) -> List[PullRequest]:
        """Pull requests where the user is a requested reviewer without a decision"""
        return [pull_request for pull_request in self._pull_requests if pull_request.is_awaiting_review_by(user)]

    def get_issues_missing_estimation(self) -> List[Issue]:
        """Open issues (never pull requests) without a story point estimate"""
        return [issue for issue in self._issues if issue.is_open and not issue.has_estimate]
