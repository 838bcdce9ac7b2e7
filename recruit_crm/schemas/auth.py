"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from recruit_crm.db.enums import Role


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency; carries everything
    needed for authorization and audit attribution.
    """
    user_id: UUID
    role: Role  # Validated enum
    email: str
    display_name: str
