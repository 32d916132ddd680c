"""SQLAlchemy models for BuildTrack"""

from .base import Base, PortableJSONB
from .user import User
from .audit_log import AuditLog
from .customer_lead import CustomerLead, Requirement, RequirementShare
from .project import Project, ArchitectProposal, ArchitectDocument
from .site_visit import SiteVisit
from .bom import Bom, BomItem
from .client_proposal import ClientProposal
from .procurement import Vendor, PurchaseOrder
from .wallet_transaction import WalletTransaction
from .message import Message
from .sitework import Sitework, SiteworkDocument, ProjectAssignmentPayment

__all__ = [
    "Base",
    "PortableJSONB",
    "User",
    "AuditLog",
    "CustomerLead",
    "Requirement",
    "RequirementShare",
    "Project",
    "ArchitectProposal",
    "ArchitectDocument",
    "SiteVisit",
    "Bom",
    "BomItem",
    "ClientProposal",
    "Vendor",
    "PurchaseOrder",
    "WalletTransaction",
    "Message",
    "Sitework",
    "SiteworkDocument",
    "ProjectAssignmentPayment",
]
