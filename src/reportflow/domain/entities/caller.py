"""Caller identity as handed to the core by the authentication layer."""

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """Roles taking part in the review workflow."""

    SUBMITTER = "submitter"
    MODERATOR = "moderator"
    AUTHORITY = "authority"


@dataclass(frozen=True)
class Caller:
    """An authenticated caller.

    Submitters belong to one college and department. Moderators are
    assigned lists of colleges and departments. The authority is unscoped.
    """

    id: str
    role: Role
    college: str = ""
    department: str = ""
    colleges: frozenset[str] = field(default_factory=frozenset)
    departments: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def submitter(cls, user_id: str, college: str, department: str) -> "Caller":
        return cls(id=user_id, role=Role.SUBMITTER, college=college, department=department)

    @classmethod
    def moderator(cls, user_id: str, colleges: list[str], departments: list[str]) -> "Caller":
        return cls(
            id=user_id,
            role=Role.MODERATOR,
            colleges=frozenset(colleges),
            departments=frozenset(departments),
        )

    @classmethod
    def authority(cls, user_id: str) -> "Caller":
        return cls(id=user_id, role=Role.AUTHORITY)

    def context(self) -> "SubmissionContext":
        """Submission context injected into records this caller creates."""
        return SubmissionContext(
            submitted_by=self.id, college=self.college, department=self.department
        )

    def covers(self, college: str, department: str) -> bool:
        """Whether a moderator is assigned both the college and the department."""
        return college in self.colleges and department in self.departments


@dataclass(frozen=True)
class SubmissionContext:
    """Identity fields stamped onto newly created records."""

    submitted_by: str
    college: str = ""
    department: str = ""
