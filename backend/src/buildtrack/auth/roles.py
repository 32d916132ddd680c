"""User roles and workflow rights for BuildTrack.

Rights are granted by a static table; there is no role hierarchy.

┌───────────────────┬───────┬─────────────┬───────────────┬───────────┬─────────────┬──────────┐
│ Right             │ admin │ sales-admin │ site-engineer │ architect │ procurement │ customer │
├───────────────────┼───────┼─────────────┼───────────────┼───────────┼─────────────┼──────────┤
│ manageUsers       │   ✓   │             │               │           │             │          │
│ manageLeads       │   ✓   │      ✓      │               │           │             │          │
│ manageSiteVisits  │   ✓   │      ✓      │       ✓       │           │             │          │
│ manageSiteworks   │   ✓   │      ✓      │       ✓       │           │             │          │
│ approveSiteVisits │   ✓   │             │               │           │             │          │
│ manageProjects    │   ✓   │      ✓      │               │     ✓     │             │          │
│ reviewDocuments   │   ✓   │             │               │           │             │    ✓     │
│ manageBoms        │   ✓   │             │               │     ✓     │      ✓      │          │
│ reviewBoms        │   ✓   │             │               │           │             │          │
│ manageProposals   │   ✓   │      ✓      │               │           │             │          │
│ manageProcurement │   ✓   │             │               │           │      ✓      │          │
│ manageWallet      │   ✓   │             │               │           │             │          │
└───────────────────┴───────┴─────────────┴───────────────┴───────────┴─────────────┴──────────┘

The plain `user` role holds no rights.
"""

from enum import Enum
from typing import Dict, FrozenSet


class UserRole(str, Enum):
    """User roles. Values are stored as TEXT and must match the user table CHECK constraint."""
    ADMIN = "admin"
    SALES_ADMIN = "sales-admin"
    SITE_ENGINEER = "site-engineer"
    ARCHITECT = "architect"
    PROCUREMENT = "procurement"
    CUSTOMER = "customer"
    USER = "user"


class Right(str, Enum):
    MANAGE_USERS = "manageUsers"
    MANAGE_LEADS = "manageLeads"
    MANAGE_SITE_VISITS = "manageSiteVisits"
    APPROVE_SITE_VISITS = "approveSiteVisits"
    MANAGE_SITEWORKS = "manageSiteworks"
    MANAGE_PROJECTS = "manageProjects"
    REVIEW_DOCUMENTS = "reviewDocuments"
    MANAGE_BOMS = "manageBoms"
    REVIEW_BOMS = "reviewBoms"
    MANAGE_PROPOSALS = "manageProposals"
    MANAGE_PROCUREMENT = "manageProcurement"
    MANAGE_WALLET = "manageWallet"


ROLE_RIGHTS: Dict[UserRole, FrozenSet[Right]] = {
    UserRole.ADMIN: frozenset(Right),
    UserRole.SALES_ADMIN: frozenset({
        Right.MANAGE_LEADS,
        Right.MANAGE_SITE_VISITS,
        Right.MANAGE_SITEWORKS,
        Right.MANAGE_PROJECTS,
        Right.MANAGE_PROPOSALS,
    }),
    UserRole.SITE_ENGINEER: frozenset({Right.MANAGE_SITE_VISITS, Right.MANAGE_SITEWORKS}),
    UserRole.ARCHITECT: frozenset({Right.MANAGE_PROJECTS, Right.MANAGE_BOMS}),
    UserRole.PROCUREMENT: frozenset({Right.MANAGE_BOMS, Right.MANAGE_PROCUREMENT}),
    UserRole.CUSTOMER: frozenset({Right.REVIEW_DOCUMENTS}),
    UserRole.USER: frozenset(),
}


def has_right(role: str, right: Right) -> bool:
    """Check whether a role holds a right.

    Examples:
        >>> has_right("admin", Right.REVIEW_BOMS)
        True
        >>> has_right("site-engineer", Right.APPROVE_SITE_VISITS)
        False
    """
    try:
        user_role = UserRole(role)
    except ValueError:
        return False
    return right in ROLE_RIGHTS.get(user_role, frozenset())
