"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with decreasing privilege levels.

    - OWNER: Workspace owner
    - ADMIN: Business admin (merges, deletions, settings)
    - RECRUITER: Day-to-day candidate work and CV imports
    - VIEWER: Read-only access
    """

    OWNER = "owner"
    ADMIN = "admin"
    RECRUITER = "recruiter"
    VIEWER = "viewer"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
