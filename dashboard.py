#!/usr/bin/env python3
"""
Dashboard commands

Maps each user command to a Project query and renders the result as a string
or a list of strings. The dashboard never writes to the terminal itself.
"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union

import requests

from config import DashboardConfig
from models import MalformedRecord
from project import NoOpenMilestone, Project
from sync_issues import GitHubIssueLoader


Result = Union[str, List[str]]


class Command(Enum):
    """Commands understood by the dashboard"""
    HELP = 'help'
    STATUS = 'status'
    SPRINT = 'sprint'
    SPRINTS = 'sprints'
    BACKLOG = 'backlog'
    REVIEW = 'review'
    CHANGELOG = 'changelog'
    ESTIMATE = 'estimate'
    REFRESH = 'refresh'
    RESET = 'reset'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, name: str) -> 'Command':
        """Resolve a command name, falling back to UNKNOWN"""
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.UNKNOWN


# Commands that need a loaded project
PROJECT_COMMANDS = frozenset({
    Command.STATUS, Command.SPRINT, Command.SPRINTS, Command.BACKLOG,
    Command.REVIEW, Command.CHANGELOG, Command.ESTIMATE,
})

NOT_LOADED_MESSAGE = "⏳ Project not loaded yet. Try 'refresh'."
NO_OPEN_MILESTONE_MESSAGE = "📭 No open milestone: nothing to show."


class Dashboard:
    """Command handlers over the current Project of one repository"""

    def __init__(self, config: DashboardConfig, loader: Optional[GitHubIssueLoader] = None):
        self.config = config
        self.user = (config.user or '').strip()
        self.loader = loader if loader is not None else GitHubIssueLoader(config)
        self.loader.on_load = self.set_project
        self.project: Optional[Project] = None

        self._handlers: Dict[Command, Callable[[Optional[Project], Sequence[str]], Result]] = {
            Command.HELP: self.help_command,
            Command.STATUS: self.status_command,
            Command.SPRINT: self.sprint_command,
            Command.SPRINTS: self.sprints_command,
            Command.BACKLOG: self.backlog_command,
            Command.REVIEW: self.review_command,
            Command.CHANGELOG: self.changelog_command,
            Command.ESTIMATE: self.estimate_command,
            Command.REFRESH: self.refresh_command,
            Command.RESET: self.reset_command,
            Command.UNKNOWN: self.help_command,
        }

    @property
    def commands(self) -> List[str]:
        return [command.value for command in Command if command is not Command.UNKNOWN]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def set_project(self, records) -> Project:
        """Build a new Project and swap it in; a failed build leaves the old one in place"""
        project = Project(records)
        self.project = project
        return project

    def _load(self, load: Callable[[], object]) -> Result:
        try:
            load()
        except MalformedRecord as e:
            return f"❌ Load failed, malformed record: {e}"
        except requests.exceptions.RequestException as e:
            return f"❌ Load failed: {e}"
        return self.status_command(self.project, ())

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def execute(self, line: str) -> Result:
        """Run one command line like 'sprint' or 'sprint Sprint 6'"""
        parts = line.split()
        if not parts:
            return self.help_command(self.project, ())

        command = Command.parse(parts[0])
        args = parts[1:]

        # Read the project reference once so a reload can't swap it mid-command
        project = self.project
        if command in PROJECT_COMMANDS and project is None:
            return NOT_LOADED_MESSAGE

        return self._handlers[command](project, args)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def help_command(self, project, args) -> Result:
        """Display help"""
        return f"Available commands: {', '.join(self.commands)}"

    def status_command(self, project, args) -> Result:
        """Show the status of the repository"""
        if project is None:
            return NOT_LOADED_MESSAGE
        return f"✅  {len(project.issues)} issues and {len(project.pull_requests)} PR fetched."

    def _select_milestone(self, project: Project, args):
        if args:
            return project.get_milestone(" ".join(args))
        return project.get_current_milestone()

    def sprint_command(self, project, args) -> Result:
        """Show the state of the current sprint (or of a named milestone)"""
        try:
            return self._select_milestone(project, args).display()
        except NoOpenMilestone:
            return NO_OPEN_MILESTONE_MESSAGE
        except KeyError:
            return f"❓ Unknown milestone: {' '.join(args)}"

    def sprints_command(self, project, args) -> Result:
        """Show the state of all sprints"""
        milestones = project.get_sprints()
        if not milestones:
            return NO_OPEN_MILESTONE_MESSAGE
        return [milestone.display() for milestone in milestones]

    def backlog_command(self, project, args) -> Result:
        """Show the state of the backlog"""
        milestones = project.get_backlogs()
        if not milestones:
            return "📭 Backlog is empty."
        return [milestone.display() for milestone in milestones]

    def review_command(self, project, args) -> Result:
        """Display pull requests awaiting your review"""
        user = args[0] if args else self.user
        if not user:
            return "❓ No GitHub user configured (use --user)."

        pull_requests = project.get_pull_requests_awaiting_review(user)
        if not pull_requests:
            return "Nothing to review. Good job! 👍"

        return ([f"🔍  {len(pull_requests)} pull requests awaiting your review:"]
                + [pull_request.display() for pull_request in pull_requests])

    def changelog_command(self, project, args) -> Result:
        """Generate a markdown changelog of the current sprint"""
        try:
            return self._select_milestone(project, args).display_changelog()
        except NoOpenMilestone:
            return NO_OPEN_MILESTONE_MESSAGE
        except KeyError:
            return f"❓ Unknown milestone: {' '.join(args)}"

    def estimate_command(self, project, args) -> Result:
        """Show stories that are missing estimation"""
        issues = project.get_issues_missing_estimation()
        if not issues:
            return "All open issues are estimated. 👍"
        return [issue.display() for issue in issues]

    def refresh_command(self, project, args) -> Result:
        """Fetch the repository again (unchanged pages come from the cache)"""
        return self._load(self.loader.load)

    def reset_command(self, project, args) -> Result:
        """Clear the cache and fetch everything again"""
        return self._load(self.loader.reset)
