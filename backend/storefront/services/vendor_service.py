# Overview: Service-layer operations for vendors; application and approval lifecycle.

"""
Vendor Lifecycle

WHY: A user becomes a seller by applying for a vendor account; a super admin
approves, rejects or suspends it. Approval grants the elevated role to the
owning user, rejection and suspension take it away again.

STATES: pending (on application) -> active | rejected | suspended.
Any later admin action may move the vendor again; moving a vendor to the
status it already has is rejected (NoOpTransitionError).

TRANSACTION:
- Vendor row + role association changes are committed together.
- The audit entry is appended AFTER that commit. If it fails, the status
  change stands and the result reports audit_logged=False.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from ..models import User, Vendor
from ..models.vendors import (
    VENDOR_STATUSES,
    VENDOR_STATUS_ACTIVE,
    VENDOR_STATUS_PENDING,
    VENDOR_STATUS_REJECTED,
    VENDOR_STATUS_SUSPENDED,
)
from ..time_utils import utcnow
from .audit_service import (
    ACTION_UPDATE_VENDOR_STATUS,
    ACTION_VENDOR_APPLY,
    AuditLogError,
    AuditLogger,
    vendor_resource,
)
from .errors import (
    DuplicateVendorApplicationError,
    NoOpTransitionError,
    UnauthenticatedError,
    UserNotFoundError,
    ValidationError,
    VendorNotFoundError,
)
from ..validation import clean_string
from .role_service import ROLE_ADMIN, ROLE_USER, RoleGranter


@dataclass
class VendorApplication:
    """Outcome of an application; the vendor row always committed."""
    vendor: Vendor
    audit_logged: bool
    audit_error: str | None = None


@dataclass
class VendorTransitionResult:
    """Outcome of a status transition; the transition itself always committed."""
    vendor: Vendor
    old_status: str
    new_status: str
    audit_logged: bool
    audit_error: str | None = None


class VendorService:
    def __init__(
        self,
        session,
        roles: RoleGranter,
        audit: AuditLogger,
        *,
        elevated_role: str = ROLE_ADMIN,
        baseline_role: str = ROLE_USER,
    ):
        self.session = session
        self.roles = roles
        self.audit = audit
        self.elevated_role = elevated_role
        self.baseline_role = baseline_role

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def apply(self, user_id: int, shop_name: str) -> VendorApplication:
        """
        Submit a vendor application for the user (status "pending").

        Raises:
            ValidationError: blank or non-text shop name
            DuplicateVendorApplicationError: user already has a vendor record
        """
        shop_name = clean_string(shop_name, field="shop_name")
        if not shop_name:
            raise ValidationError("shop_name is required")

        existing = self.session.query(Vendor).filter_by(user_id=user_id).first()
        if existing is not None:
            raise DuplicateVendorApplicationError(
                "You already applied as vendor",
                details={"vendor_id": existing.id, "status": existing.status},
            )

        vendor = Vendor(user_id=user_id, shop_name=shop_name, status=VENDOR_STATUS_PENDING)
        self.session.add(vendor)
        try:
            self.session.commit()
        except IntegrityError:
            # a concurrent application for the same user won the unique constraint
            self.session.rollback()
            raise DuplicateVendorApplicationError("You already applied as vendor")

        return VendorApplication(
            vendor=vendor,
            **self._append_audit(
                actor_id=user_id,
                action=ACTION_VENDOR_APPLY,
                resource=vendor_resource(vendor.id),
                new_value={"shop_name": shop_name, "status": VENDOR_STATUS_PENDING},
            ),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_vendor(self, vendor_id: int) -> Vendor:
        vendor = self.session.get(Vendor, vendor_id)
        if vendor is None:
            raise VendorNotFoundError(f"Vendor {vendor_id} not found")
        return vendor

    def list_vendors(self, status: str | None = None) -> list[Vendor]:
        query = self.session.query(Vendor)
        if status:
            if status not in VENDOR_STATUSES:
                raise ValidationError(
                    f"Invalid status: {status}",
                    details={"allowed": list(VENDOR_STATUSES)},
                )
            query = query.filter(Vendor.status == status)
        return query.order_by(Vendor.id.asc()).all()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(self, vendor_id: int, *, actor_id: int | None) -> VendorTransitionResult:
        return self.transition_status(vendor_id, VENDOR_STATUS_ACTIVE, actor_id=actor_id)

    def reject(self, vendor_id: int, *, actor_id: int | None) -> VendorTransitionResult:
        return self.transition_status(vendor_id, VENDOR_STATUS_REJECTED, actor_id=actor_id)

    def suspend(self, vendor_id: int, *, actor_id: int | None) -> VendorTransitionResult:
        return self.transition_status(vendor_id, VENDOR_STATUS_SUSPENDED, actor_id=actor_id)

    def transition_status(
        self,
        vendor_id: int,
        new_status: str,
        *,
        actor_id: int | None,
    ) -> VendorTransitionResult:
        """
        Move a vendor to new_status and synchronize the owner's roles.

        Raises:
            ValidationError: new_status outside the vocabulary
            VendorNotFoundError: no such vendor
            NoOpTransitionError: vendor already has new_status
            UnauthenticatedError: no acting user
            UserNotFoundError: vendor owner missing
            RoleNotFoundError: elevated/baseline role not configured
        """
        if new_status not in VENDOR_STATUSES:
            raise ValidationError(
                f"Invalid status: {new_status}",
                details={"allowed": list(VENDOR_STATUSES)},
            )

        vendor = self.get_vendor(vendor_id)

        old_status = vendor.status
        if old_status == new_status:
            raise NoOpTransitionError(
                f"Vendor already has status {new_status}",
                details={"vendor_id": vendor.id, "status": old_status},
            )

        if actor_id is None:
            raise UnauthenticatedError("Unauthorized")

        user = self.session.get(User, vendor.user_id)
        if user is None:
            raise UserNotFoundError(
                "User not found",
                details={"user_id": vendor.user_id},
            )

        try:
            vendor.status = new_status
            if new_status == VENDOR_STATUS_ACTIVE:
                vendor.approved_by_user_id = actor_id
                vendor.approved_at = utcnow()
                self.roles.grant_role(user, self.elevated_role)
                self.roles.grant_role(user, self.baseline_role)
            elif new_status in (VENDOR_STATUS_REJECTED, VENDOR_STATUS_SUSPENDED):
                vendor.approved_by_user_id = None
                vendor.approved_at = None
                self.roles.revoke_role(user, self.elevated_role)
                self.roles.grant_role(user, self.baseline_role)
            else:
                vendor.approved_by_user_id = None
                vendor.approved_at = None

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        return VendorTransitionResult(
            vendor=vendor,
            old_status=old_status,
            new_status=new_status,
            **self._append_audit(
                actor_id=actor_id,
                action=ACTION_UPDATE_VENDOR_STATUS,
                resource=vendor_resource(vendor.id),
                old_value={"status": old_status},
                new_value={"status": new_status},
            ),
        )

    def _append_audit(self, **entry) -> dict:
        """Best-effort audit write; the caller has already committed its change."""
        try:
            self.audit.append(**entry)
        except AuditLogError as exc:
            return {"audit_logged": False, "audit_error": str(exc)}
        return {"audit_logged": True}
