"""
Database Models

Every business record carries organization_id, the tenant boundary.
Species and users are global.
"""
from meatmath.models.user import User
from meatmath.models.organization import Organization
from meatmath.models.membership import OrganizationMember
from meatmath.models.species import Species
from meatmath.models.customer import Customer
from meatmath.models.processing_record import ProcessingRecord
from meatmath.models.cut_instruction import CutInstruction
from meatmath.models.inventory_item import InventoryItem
from meatmath.models.invoice import Invoice

__all__ = [
    "User",
    "Organization",
    "OrganizationMember",
    "Species",
    "Customer",
    "ProcessingRecord",
    "CutInstruction",
    "InventoryItem",
    "Invoice",
]
