"""Issue eligibility rules.

An issue is posted only when:
- its project is whitelisted (case-insensitive),
- neither its assignee nor its author is blacklisted (exact name match),
- and it is not assigned to its own author.
"""

from __future__ import annotations

from collections.abc import Iterable

from redmine_slack_relay.relay.redmine.models import Issue


class IssueFilter:
    def __init__(
        self, *, project_whitelist: Iterable[str], user_blacklist: Iterable[str] = ()
    ) -> None:
        self._projects = frozenset(name.strip().lower() for name in project_whitelist)
        self._users = frozenset(user_blacklist)

    @property
    def project_whitelist(self) -> frozenset[str]:
        return self._projects

    def project_whitelisted(self, issue: Issue) -> bool:
        return issue.project.name.strip().lower() in self._projects

    def user_blacklisted(self, issue: Issue) -> bool:
        if issue.author.name in self._users:
            return True
        return issue.assigned_to is not None and issue.assigned_to.name in self._users

    @staticmethod
    def is_self_assigned(issue: Issue) -> bool:
        return issue.assigned_to is not None and issue.assigned_to.id == issue.author.id

    def is_eligible(self, issue: Issue) -> bool:
        return (
            self.project_whitelisted(issue)
            and not self.user_blacklisted(issue)
            and not self.is_self_assigned(issue)
        )

    def eligible(self, issues: Iterable[Issue]) -> list[Issue]:
        """Eligible issues, in the order given."""

        return [issue for issue in issues if self.is_eligible(issue)]
