"""
Ownership gate for lead access.

Every authenticated principal may read every lead. Only the owner may edit
or delete it. Deployments can pass a bypass check (see admin_bypass) to let
additional principals write.
"""

import logging
from typing import Callable

from auth.types import Principal
from core.exceptions import AuthorizationError
from core.models import Lead

logger = logging.getLogger(__name__)

BypassCheck = Callable[[Principal], bool]


def admin_bypass(principal: Principal) -> bool:
    """Bypass check granting write access to administrators."""
    return principal.is_admin


class OwnershipGate:
    """Decide read and write access for (principal, lead) pairs."""

    def __init__(self, bypass: BypassCheck | None = None):
        self._bypass = bypass

    def can_read(self, principal: Principal, lead: Lead) -> bool:
        return True

    def can_write(self, principal: Principal, lead: Lead) -> bool:
        if lead.owner_id == principal.id:
            return True
        return self._bypass is not None and self._bypass(principal)

    def require_write(self, principal: Principal, lead: Lead, action: str = "edit") -> None:
        """
        Raises:
            AuthorizationError: If principal may not modify the lead
        """
        if not self.can_write(principal, lead):
            logger.warning(
                f"Principal {principal.id} denied {action} on lead {lead.id} "
                f"owned by {lead.owner_id}"
            )
            raise AuthorizationError(lead.id, principal.id, action)
