"""Role permission helper sets."""

from recruit_crm.db.enums.auth import Role

# Roles that can create candidates and run CV imports
ROLES_CAN_IMPORT = {Role.OWNER, Role.ADMIN, Role.RECRUITER}

# Roles that can view import batches and their progress
ROLES_CAN_VIEW_IMPORTS = {Role.OWNER, Role.ADMIN, Role.RECRUITER}

# Roles that can delete import batches
ROLES_CAN_DELETE_IMPORTS = {Role.OWNER, Role.ADMIN}

# Roles that can review duplicates and merge candidates
ROLES_CAN_MERGE = {Role.OWNER, Role.ADMIN}
