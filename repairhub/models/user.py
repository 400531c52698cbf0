from typing import Optional
from enum import Enum

class UserRole(str, Enum):
    CUSTOMER = "customer"
    TECHNICIAN = "technician"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> "UserRole":
        """Read a stored or claimed role. Unknown and legacy values ("user") mean customer."""
        try:
            return cls(value)
        except ValueError:
            return cls.CUSTOMER

    @property
    def landing_page(self) -> str:
        return "/technician" if self in (UserRole.TECHNICIAN, UserRole.ADMIN) else "/dashboard"

# Roles a caller may pick at registration; anything else becomes a customer
REGISTRABLE_ROLES = (UserRole.CUSTOMER, UserRole.TECHNICIAN)
