"""ProjectLifecycleService: design confirm / pending entry / archive / association."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from simpleux.errors import ErrorKind
from simpleux.services import ProjectLifecycleService
from simpleux.services.lifecycle_service import (
    STATUS_CONFIRMED,
    STATUS_PENDING_CONFIRMATION,
    parse_amount,
)
from simpleux.store import StoreError

OLD = datetime(2020, 1, 1, 8, 0, 0)


# ---------------------------------------------------------------------------
# design confirm
# ---------------------------------------------------------------------------

class TestDesignConfirm:

    def test_confirm_true_sets_confirmed(self, service, make_project, user, reload):
        pid = make_project(updated_at=OLD)
        result = service.submit_design_confirm(pid, True, acting_user_id=user.id)

        assert result.ok
        assert result.value == {"success": True}
        project = reload(pid)
        assert project.status == STATUS_CONFIRMED
        assert project.updated_at > OLD

    def test_confirm_false_sets_pending_confirmation(self, service, make_project, user, reload):
        pid = make_project(status=STATUS_CONFIRMED)
        assert service.submit_design_confirm(pid, False, acting_user_id=user.id).ok
        assert reload(pid).status == STATUS_PENDING_CONFIRMATION

    def test_same_value_twice_is_idempotent(self, service, make_project, user, reload):
        pid = make_project()
        assert service.submit_design_confirm(pid, True, acting_user_id=user.id).ok
        assert service.submit_design_confirm(pid, True, acting_user_id=user.id).ok
        assert reload(pid).status == STATUS_CONFIRMED

    def test_does_not_touch_other_flags(self, service, make_project, user, reload):
        pid = make_project(is_pending_entry=True, contract_amount=Decimal('88'), archived_at=OLD)
        assert service.submit_design_confirm(pid, True, acting_user_id=user.id).ok

        project = reload(pid)
        assert project.is_pending_entry is True
        assert project.contract_amount == Decimal('88')
        assert project.archived_at == OLD

    def test_missing_project_is_not_found(self, service, user):
        result = service.submit_design_confirm("does-not-exist", True, acting_user_id=user.id)
        assert not result.ok
        assert result.error == ErrorKind.NOT_FOUND
        assert result.status_code == 404

    def test_unauthenticated_checked_before_store(self):
        store = MagicMock()
        result = ProjectLifecycleService(store).submit_design_confirm("p1", True, acting_user_id=None)

        assert result.error == ErrorKind.UNAUTHENTICATED
        assert result.status_code == 401
        store.update_project.assert_not_called()

    @pytest.mark.parametrize("confirmed", ["true", 1, None])
    def test_non_bool_confirmed_rejected(self, service, make_project, user, reload, confirmed):
        pid = make_project()
        result = service.submit_design_confirm(pid, confirmed, acting_user_id=user.id)
        assert result.error == ErrorKind.VALIDATION_ERROR
        assert reload(pid).status == STATUS_PENDING_CONFIRMATION

    def test_store_failure_carries_message(self):
        store = MagicMock()
        store.update_project.side_effect = StoreError("connection reset")
        result = ProjectLifecycleService(store).submit_design_confirm("p1", True, acting_user_id="u1")

        assert result.error == ErrorKind.STORE_WRITE_FAILURE
        assert "connection reset" in result.message
        assert result.status_code == 500


# ---------------------------------------------------------------------------
# pending entry
# ---------------------------------------------------------------------------

class TestPendingEntry:

    @pytest.mark.parametrize("amount,expected", [
        (0, Decimal('0')),
        (15000, Decimal('15000')),
        (12.5, Decimal('12.5')),
        (Decimal('99.99'), Decimal('99.99')),
    ])
    def test_sets_flag_and_amount(self, service, make_project, user, reload, amount, expected):
        pid = make_project(updated_at=OLD)
        result = service.submit_pending_entry(pid, amount, acting_user_id=user.id)

        assert result.ok
        project = reload(pid)
        assert project.is_pending_entry is True
        assert project.contract_amount == expected
        assert project.updated_at > OLD

    def test_already_pending_stays_pending(self, service, make_project, user, reload):
        pid = make_project(is_pending_entry=True, contract_amount=Decimal('10'))
        assert service.submit_pending_entry(pid, 20, acting_user_id=user.id).ok

        project = reload(pid)
        assert project.is_pending_entry is True
        assert project.contract_amount == Decimal('20')

    @pytest.mark.parametrize("amount", [
        -1, -0.01, "15000", None, True, float("nan"), float("inf"),
        # 超出 Numeric(14, 2) 的精度或范围，不能静默截断
        15000.125, Decimal('0.004'), Decimal('1e12'),
    ])
    def test_invalid_amount_rejected_without_write(self, service, make_project, user, reload, amount):
        pid = make_project(contract_amount=Decimal('5'), updated_at=OLD)
        result = service.submit_pending_entry(pid, amount, acting_user_id=user.id)

        assert result.error == ErrorKind.VALIDATION_ERROR
        assert result.status_code == 400
        project = reload(pid)
        assert project.is_pending_entry is False
        assert project.contract_amount == Decimal('5')
        assert project.updated_at == OLD

    def test_missing_project_is_not_found(self, service, user):
        result = service.submit_pending_entry("does-not-exist", 100, acting_user_id=user.id)
        assert result.error == ErrorKind.NOT_FOUND

    def test_unauthenticated(self, service, make_project, reload):
        pid = make_project()
        result = service.submit_pending_entry(pid, 100, acting_user_id=None)
        assert result.error == ErrorKind.UNAUTHENTICATED
        assert reload(pid).is_pending_entry is False


def test_confirm_then_pending_entry_are_independent(service, make_project, user, reload):
    pid = make_project(status=STATUS_PENDING_CONFIRMATION, contract_amount=Decimal('0'))

    assert service.submit_design_confirm(pid, True, acting_user_id=user.id).ok
    project = reload(pid)
    assert project.status == STATUS_CONFIRMED
    assert project.contract_amount == Decimal('0')

    assert service.submit_pending_entry(pid, 15000, acting_user_id=user.id).ok
    project = reload(pid)
    assert project.is_pending_entry is True
    assert project.contract_amount == Decimal('15000')
    assert project.status == STATUS_CONFIRMED


# ---------------------------------------------------------------------------
# archive / cancel archive
# ---------------------------------------------------------------------------

class TestArchive:

    def test_archive_sets_marker_keeps_status(self, service, make_project, user, reload):
        pid = make_project(status=STATUS_CONFIRMED)
        result = service.submit_archive(pid, acting_user_id=user.id)

        assert result.ok
        project = reload(pid)
        assert project.archived
        assert project.archived_by == user.id
        assert project.actual_end_date is not None
        assert project.status == STATUS_CONFIRMED

    def test_archive_twice_is_invalid_state(self, service, make_project, user):
        pid = make_project(archived_at=OLD)
        result = service.submit_archive(pid, acting_user_id=user.id)
        assert result.error == ErrorKind.INVALID_STATE
        assert result.status_code == 400

    def test_cancel_archive_clears_marker(self, service, make_project, user, reload):
        pid = make_project(archived_at=OLD, updated_at=OLD)
        result = service.cancel_archive(pid, acting_user_id=user.id)

        assert result.ok
        assert result.value == {"id": pid, "archived": False}
        project = reload(pid)
        assert project.archived_at is None
        assert project.unarchived_by == user.id
        assert project.updated_at > OLD

    def test_cancel_archive_on_unarchived_is_invalid_state(self, service, make_project, user, reload):
        pid = make_project(updated_at=OLD)
        result = service.cancel_archive(pid, acting_user_id=user.id)

        assert result.error == ErrorKind.INVALID_STATE
        project = reload(pid)
        assert project.archived_at is None
        assert project.unarchived_by is None
        assert project.updated_at == OLD

    def test_cancel_archive_twice_fails_second_time(self, service, make_project, user, reload):
        pid = make_project(archived_at=OLD)
        assert service.cancel_archive(pid, acting_user_id=user.id).ok
        assert service.cancel_archive(pid, acting_user_id=user.id).error == ErrorKind.INVALID_STATE
        assert not reload(pid).archived

    def test_cancel_archive_missing_project(self, service, user):
        result = service.cancel_archive("does-not-exist", acting_user_id=user.id)
        assert result.error == ErrorKind.NOT_FOUND

    def test_cancel_archive_keeps_status_and_entry_flags(self, service, make_project, user, reload):
        pid = make_project(archived_at=OLD, status=STATUS_CONFIRMED, is_pending_entry=True)
        assert service.cancel_archive(pid, acting_user_id=user.id).ok

        project = reload(pid)
        assert project.status == STATUS_CONFIRMED
        assert project.is_pending_entry is True


# ---------------------------------------------------------------------------
# framework association
# ---------------------------------------------------------------------------

class TestHasAssociatedProjects:

    def test_false_without_projects(self, service, make_framework):
        fid = make_framework()
        result = service.has_associated_projects(fid)
        assert result.ok
        assert result.value is False

    def test_true_right_after_linking(self, service, make_framework, make_project):
        fid = make_framework()
        assert service.has_associated_projects(fid).value is False

        make_project(framework_id=fid)
        assert service.has_associated_projects(fid).value is True

    def test_unknown_framework_is_false(self, service):
        assert service.has_associated_projects("no-such-framework").value is False

    def test_store_failure(self):
        store = MagicMock()
        store.framework_has_projects.side_effect = StoreError("timeout")
        result = ProjectLifecycleService(store).has_associated_projects("f1")

        assert result.error == ErrorKind.STORE_READ_FAILURE
        assert "timeout" in result.message


def test_get_project(service, make_project):
    pid = make_project(contract_amount=Decimal('100.50'))
    result = service.get_project(pid)
    assert result.ok
    assert result.value["id"] == pid
    assert result.value["contract_amount"] == "100.50"
    assert result.value["archived"] is False

    assert service.get_project("nope").error == ErrorKind.NOT_FOUND


@pytest.mark.parametrize("value,expected", [
    (0, Decimal('0')),
    (1.25, Decimal('1.25')),
    (-3, None),
    ("1", None),
    (False, None),
    (Decimal('NaN'), None),
    (Decimal('1.500'), Decimal('1.5')),
    (Decimal('999999999999.99'), Decimal('999999999999.99')),
    (Decimal('1000000000000'), None),
    (0.001, None),
])
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected
