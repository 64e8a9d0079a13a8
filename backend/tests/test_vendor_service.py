"""
Vendor lifecycle tests.

Verifies:
- Application creates a pending vendor; a second application conflicts
- Approval grants the elevated role once and records the approver
- Rejection and suspension revoke the elevated role, keep the baseline role
- Moving a vendor to its current status is rejected
- Exactly one audit entry per transition, and audit failure does not undo it
"""

import json

import pytest

from storefront.models import AuditLog, User, Vendor
from storefront.services.audit_service import AuditLogError, AuditLogger, vendor_resource
from storefront.services.errors import (
    DuplicateVendorApplicationError,
    NoOpTransitionError,
    UnauthenticatedError,
    ValidationError,
    VendorNotFoundError,
)
from storefront.services.role_service import RoleService
from storefront.services.vendor_service import VendorService

from conftest import StaleReads


class FailingAuditLogger(AuditLogger):
    def append(self, **kwargs):
        raise AuditLogError("audit store unavailable")


def _service(db_session, audit=None):
    return VendorService(db_session, RoleService(db_session), audit or AuditLogger(db_session))


def _slugs(db_session, user_id):
    return RoleService.role_slugs(db_session.get(User, user_id))


@pytest.fixture
def actor(make_user):
    """Super admin with a fixed id."""
    return make_user("root@shop.test", roles_=("superadmin", "user"), id=3)


@pytest.fixture
def applicant(make_user):
    return make_user("maker@shop.test", id=10)


@pytest.fixture
def pending_vendor(db_session, applicant):
    vendor = Vendor(id=7, user_id=applicant.id, shop_name="Maker Co", status="pending")
    db_session.add(vendor)
    db_session.commit()
    return vendor


class TestApply:
    def test_apply_creates_pending_vendor(self, db_session, applicant):
        application = _service(db_session).apply(applicant.id, "  Maker Co  ")
        vendor = application.vendor

        assert application.audit_logged is True

        assert vendor.status == "pending"
        assert vendor.shop_name == "Maker Co"
        assert vendor.approved_by_user_id is None
        entries = AuditLogger(db_session).list_for_resource(vendor_resource(vendor.id))
        assert [e.action for e in entries] == ["vendor_apply"]

    def test_second_application_conflicts(self, db_session, applicant):
        _service(db_session).apply(applicant.id, "Maker Co")

        with pytest.raises(DuplicateVendorApplicationError) as exc:
            _service(db_session).apply(applicant.id, "Another Shop")

        assert exc.value.status_code == 409
        assert db_session.query(Vendor).count() == 1

    def test_blank_shop_name_rejected(self, db_session, applicant):
        with pytest.raises(ValidationError):
            _service(db_session).apply(applicant.id, "   ")

    def test_apply_succeeds_when_audit_fails(self, db_session, applicant):
        application = _service(db_session, FailingAuditLogger(db_session)).apply(applicant.id, "Maker Co")

        assert application.audit_logged is False
        assert "audit store unavailable" in application.audit_error
        assert db_session.get(Vendor, application.vendor.id).status == "pending"

    @pytest.mark.parametrize("shop_name", [123, ["Maker Co"], {"name": "Maker Co"}])
    def test_non_text_shop_name_rejected(self, db_session, applicant, shop_name):
        with pytest.raises(ValidationError, match="shop_name must be a string"):
            _service(db_session).apply(applicant.id, shop_name)
        assert db_session.query(Vendor).count() == 0

    def test_unique_violation_on_commit_is_a_conflict(self, db_session, applicant):
        """Another request inserted the vendor row between our check and our commit."""
        _service(db_session).apply(applicant.id, "First Shop")

        with pytest.raises(DuplicateVendorApplicationError):
            _service(StaleReads(db_session, Vendor)).apply(applicant.id, "Second Shop")

        assert [v.shop_name for v in db_session.query(Vendor).all()] == ["First Shop"]


class TestTransitions:
    def test_approve_vendor_7_by_actor_3(self, db_session, actor, applicant, pending_vendor):
        result = _service(db_session).approve(7, actor_id=3)

        assert result.old_status == "pending"
        assert result.new_status == "active"
        assert result.audit_logged is True

        vendor = db_session.get(Vendor, 7)
        assert vendor.status == "active"
        assert vendor.approved_by_user_id == 3
        assert vendor.approved_at is not None
        assert set(_slugs(db_session, applicant.id)) == {"user", "admin"}

        entries = db_session.query(AuditLog).filter_by(resource="vendor:7").all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.actor_id == 3
        assert entry.action == "update_vendor_status"
        assert json.loads(entry.old_value) == {"status": "pending"}
        assert json.loads(entry.new_value) == {"status": "active"}

    def test_noop_transition_rejected_without_audit(self, db_session, actor, pending_vendor):
        with pytest.raises(NoOpTransitionError) as exc:
            _service(db_session).transition_status(7, "pending", actor_id=3)

        assert exc.value.status_code == 409
        assert db_session.query(AuditLog).filter_by(resource="vendor:7").count() == 0

    def test_unknown_status_rejected(self, db_session, actor, pending_vendor):
        with pytest.raises(ValidationError):
            _service(db_session).transition_status(7, "approved", actor_id=3)

    def test_missing_vendor(self, db_session, actor):
        with pytest.raises(VendorNotFoundError):
            _service(db_session).approve(999, actor_id=3)

    def test_missing_actor(self, db_session, pending_vendor):
        with pytest.raises(UnauthenticatedError):
            _service(db_session).approve(7, actor_id=None)
        assert db_session.get(Vendor, 7).status == "pending"

    @pytest.mark.parametrize("new_status", ["rejected", "suspended"])
    def test_reject_or_suspend_revokes_elevated_role(self, db_session, actor, applicant, pending_vendor, new_status):
        service = _service(db_session)
        service.approve(7, actor_id=3)

        service.transition_status(7, new_status, actor_id=3)

        vendor = db_session.get(Vendor, 7)
        assert vendor.status == new_status
        assert vendor.approved_by_user_id is None
        assert vendor.approved_at is None
        assert _slugs(db_session, applicant.id) == ["user"]

    def test_reapproval_grants_role_once(self, db_session, actor, applicant, pending_vendor):
        service = _service(db_session)
        service.approve(7, actor_id=3)
        service.suspend(7, actor_id=3)
        service.approve(7, actor_id=3)

        slugs = _slugs(db_session, applicant.id)
        assert slugs.count("admin") == 1
        assert slugs.count("user") == 1
        assert db_session.query(AuditLog).filter_by(resource="vendor:7").count() == 3

    def test_approval_restores_missing_baseline_role(self, db_session, actor, applicant, pending_vendor):
        roles = RoleService(db_session)
        roles.revoke_role(applicant, "user")
        db_session.commit()

        _service(db_session).approve(7, actor_id=3)

        assert set(_slugs(db_session, applicant.id)) == {"user", "admin"}

    def test_audit_failure_keeps_transition(self, db_session, actor, applicant, pending_vendor):
        result = _service(db_session, FailingAuditLogger(db_session)).approve(7, actor_id=3)

        assert result.audit_logged is False
        assert "audit store unavailable" in result.audit_error
        assert db_session.get(Vendor, 7).status == "active"
        assert "admin" in _slugs(db_session, applicant.id)

    def test_list_vendors_by_status(self, db_session, actor, applicant, pending_vendor, make_user):
        other = make_user("other@shop.test")
        _service(db_session).apply(other.id, "Other Shop")
        _service(db_session).approve(7, actor_id=3)

        active = _service(db_session).list_vendors("active")
        pending = _service(db_session).list_vendors("pending")

        assert [v.id for v in active] == [7]
        assert [v.user_id for v in pending] == [other.id]
        with pytest.raises(ValidationError):
            _service(db_session).list_vendors("approved")
