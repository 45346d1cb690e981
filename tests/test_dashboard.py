#!/usr/bin/env python3
"""
Unit tests for dashboard.py - command dispatch and project reloads
"""

import unittest
from unittest.mock import Mock
import os
import sys

import requests

# Add parent directory to path to import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from config import DashboardConfig
from dashboard import Command, Dashboard, NOT_LOADED_MESSAGE, NO_OPEN_MILESTONE_MESSAGE
from sample_data import issue_record, pr_record, sample_records


class FakeLoader:
    """Loader double delivering canned batches through on_load"""

    def __init__(self, batches):
        self.batches = list(batches)
        self.on_load = None
        self.reset_count = 0

    def load(self):
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        self.on_load(batch)
        return batch

    def reset(self):
        self.reset_count += 1
        return self.load()


class TestCommand(unittest.TestCase):
    """Test the Command type"""

    def test_parse(self):
        self.assertIs(Command.parse("sprint"), Command.SPRINT)
        self.assertIs(Command.parse("  BACKLOG "), Command.BACKLOG)
        self.assertIs(Command.parse("deploy"), Command.UNKNOWN)

    def test_every_command_has_a_handler(self):
        dashboard = Dashboard(DashboardConfig("o", "r", "bob"), loader=FakeLoader([]))
        self.assertEqual(set(dashboard._handlers), set(Command))


class TestDashboard(unittest.TestCase):
    """Test command handlers against a loaded project"""

    def setUp(self):
        """Set up test fixtures"""
        self.config = DashboardConfig(owner="test_owner", repo="test_repo", user=" bob ")
        self.loader = FakeLoader([sample_records()])
        self.dashboard = Dashboard(self.config, loader=self.loader)
        self.refresh_result = self.dashboard.execute("refresh")

    def test_loader_is_wired_to_set_project(self):
        self.assertEqual(self.loader.on_load, self.dashboard.set_project)
        self.assertIsNotNone(self.dashboard.project)

    def test_refresh_shows_status(self):
        self.assertEqual(self.refresh_result, "✅  6 issues and 3 PR fetched.")

    def test_status(self):
        self.assertEqual(self.dashboard.execute("status"), "✅  6 issues and 3 PR fetched.")

    def test_sprint(self):
        """Test sprint shows the current milestone"""
        result = self.dashboard.execute("sprint")
        self.assertIsInstance(result, str)
        self.assertTrue(result.split("\n")[0].startswith("📅 Sprint 5"))

    def test_sprint_by_name(self):
        result = self.dashboard.execute("sprint Sprint 6")
        self.assertIn("Sprint 6", result.split("\n")[0])

        self.assertIn("Unknown milestone", self.dashboard.execute("sprint Sprint 42"))

    def test_sprints_and_backlog(self):
        """Test sprints list every open milestone and backlog skips the current one"""
        sprints = self.dashboard.execute("sprints")
        backlog = self.dashboard.execute("backlog")

        self.assertEqual(len(sprints), 3)
        self.assertEqual(len(backlog), 2)
        self.assertIn("Sprint 5", sprints[0])
        self.assertIn("Sprint 6", backlog[0])
        self.assertEqual(sprints[1:], backlog)

    def test_review(self):
        """Test review lists pull requests awaiting the configured user"""
        result = self.dashboard.execute("review")

        self.assertEqual(result[0], "🔍  2 pull requests awaiting your review:")
        self.assertIn("#4", result[1])
        self.assertIn("#9", result[2])

    def test_review_for_other_user(self):
        self.assertEqual(self.dashboard.execute("review alice"), "Nothing to review. Good job! 👍")

    def test_changelog(self):
        changelog = self.dashboard.execute("changelog")
        self.assertTrue(changelog.startswith("## Sprint 5"))
        self.assertIn("- #5 Add signup form", changelog)
        self.assertIn("- #2 Signup form", changelog)

    def test_estimate(self):
        result = self.dashboard.execute("estimate")
        self.assertEqual(len(result), 3)
        self.assertIn("#3", result[0])

    def test_help_and_unknown(self):
        """Test help lists commands and unknown commands fall back to help"""
        help_text = self.dashboard.execute("help")

        self.assertTrue(help_text.startswith("Available commands: "))
        for name in ("status", "sprint", "sprints", "backlog", "review", "changelog", "estimate", "refresh", "reset"):
            self.assertIn(name, help_text)
        self.assertNotIn("unknown", help_text)
        self.assertEqual(self.dashboard.execute("deploy"), help_text)
        self.assertEqual(self.dashboard.execute(""), help_text)


class TestNoMilestones(unittest.TestCase):
    """Test commands when the repository has no open milestone"""

    def setUp(self):
        """Set up test fixtures"""
        self.dashboard = Dashboard(DashboardConfig("o", "r", "bob"),
                                   loader=FakeLoader([[issue_record(1), pr_record(2)]]))
        self.dashboard.execute("refresh")

    def test_sprint_and_changelog_report_absence(self):
        self.assertEqual(self.dashboard.execute("sprint"), NO_OPEN_MILESTONE_MESSAGE)
        self.assertEqual(self.dashboard.execute("changelog"), NO_OPEN_MILESTONE_MESSAGE)

    def test_sprints_and_backlog_are_empty(self):
        self.assertEqual(self.dashboard.execute("sprints"), NO_OPEN_MILESTONE_MESSAGE)
        self.assertIn("Backlog is empty", self.dashboard.execute("backlog"))


class TestReload(unittest.TestCase):
    """Test whole-project swaps on reload"""

    def test_commands_before_load(self):
        dashboard = Dashboard(DashboardConfig("o", "r", "bob"), loader=FakeLoader([]))

        self.assertEqual(dashboard.execute("sprint"), NOT_LOADED_MESSAGE)
        self.assertEqual(dashboard.execute("status"), NOT_LOADED_MESSAGE)
        self.assertTrue(dashboard.execute("help").startswith("Available commands"))

    def test_refresh_replaces_project(self):
        """Test a reload builds a new Project instead of mutating the old one"""
        loader = FakeLoader([[issue_record(1)], [issue_record(1), issue_record(2)]])
        dashboard = Dashboard(DashboardConfig("o", "r", "bob"), loader=loader)

        dashboard.execute("refresh")
        first = dashboard.project
        self.assertEqual(len(first.issues), 1)

        dashboard.execute("refresh")
        self.assertIsNot(dashboard.project, first)
        self.assertEqual(len(dashboard.project.issues), 2)
        self.assertEqual(len(first.issues), 1)

    def test_malformed_batch_keeps_previous_project(self):
        """Test a malformed record fails the load and leaves the old project in place"""
        loader = FakeLoader([[issue_record(1)], [issue_record(1), {"number": 2}]])
        dashboard = Dashboard(DashboardConfig("o", "r", "bob"), loader=loader)
        dashboard.execute("refresh")
        previous = dashboard.project

        result = dashboard.execute("refresh")

        self.assertIn("malformed record", result)
        self.assertIs(dashboard.project, previous)

    def test_network_failure_is_reported(self):
        loader = FakeLoader([requests.exceptions.ConnectionError("offline")])
        dashboard = Dashboard(DashboardConfig("o", "r", "bob"), loader=loader)

        result = dashboard.execute("refresh")

        self.assertTrue(result.startswith("❌ Load failed"))
        self.assertIsNone(dashboard.project)

    def test_reset_uses_loader_reset(self):
        loader = FakeLoader([[issue_record(1)]])
        dashboard = Dashboard(DashboardConfig("o", "r", "bob"), loader=loader)

        self.assertEqual(dashboard.execute("reset"), "✅  1 issues and 0 PR fetched.")
        self.assertEqual(loader.reset_count, 1)

    def test_review_without_user(self):
        loader = FakeLoader([[pr_record(1, reviewers=["bob"])]])
        dashboard = Dashboard(DashboardConfig("o", "r", ""), loader=loader)
        dashboard.execute("refresh")

        self.assertIn("No GitHub user", dashboard.execute("review"))


if __name__ == '__main__':
    unittest.main()
