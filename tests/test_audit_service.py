"""
Finance Tracker - Audit Service Tests

Tests for the append-only audit trail and its best-effort write path.
"""

import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

import app.services.audit_service as audit_module
from app.models.audit import AuditAction, AuditLog
from app.models.transaction import Expense
from app.services.audit_service import AuditService, RequestContext, serialize_audit_log


API = "/api/v1"


class TestAuditRecord:
    """Recording entries."""

    @pytest.mark.asyncio
    async def test_record_stores_snapshots(self, db_session, accountant_user):
        entity_id = uuid.uuid4()
        service = AuditService(db_session)

        log = await service.record(
            user_id=accountant_user.id,
            action=AuditAction.UPDATE,
            module="expenses",
            entity_id=entity_id,
            old_values={"amount": "100.00"},
            new_values={"amount": "150.00"},
            ip_address="10.0.0.7",
            user_agent="pytest",
        )

        assert log is not None
        assert log.entity_id == str(entity_id)
        assert log.old_values == {"amount": "100.00"}
        assert log.new_values == {"amount": "150.00"}
        assert log.ip_address == "10.0.0.7"

    @pytest.mark.asyncio
    async def test_missing_snapshots_stay_null(self, db_session):
        log = await AuditService(db_session).record(
            user_id=None,
            action="delete",
            module="revenues",
            entity_id="abc",
        )

        assert log.old_values is None
        assert log.new_values is None
        assert log.action == AuditAction.DELETE

    @pytest.mark.asyncio
    async def test_record_with_context(self, db_session):
        ctx = RequestContext(request_id="rid-1", ip_address="192.168.1.20", user_agent="curl/8")

        log = await AuditService(db_session).record_with_context(
            ctx, user_id=None, action=AuditAction.LOGIN, module="auth", entity_id=None,
        )

        assert log.ip_address == "192.168.1.20"
        assert log.user_agent == "curl/8"
        assert serialize_audit_log(log)["module"] == "auth"

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, db_session, monkeypatch, caplog):
        def broken_audit_log(**kwargs):
            raise OperationalError("INSERT INTO audit_logs", {}, Exception("disk full"))

        monkeypatch.setattr(audit_module, "AuditLog", broken_audit_log)

        with caplog.at_level("ERROR"):
            result = await AuditService(db_session).record(
                user_id=None, action=AuditAction.CREATE, module="expenses", entity_id="x",
            )

        assert result is None
        assert "audit log write failed" in caplog.text


class TestAuditFailureDuringWrites:
    """A broken audit trail never undoes or fails the primary write."""

    @pytest.mark.asyncio
    async def test_create_succeeds_without_audit_row(
        self, client, db_session, accountant_headers, business_unit, monkeypatch,
    ):
        unit_id = str(business_unit.id)

        def broken_audit_log(**kwargs):
            raise OperationalError("INSERT INTO audit_logs", {}, Exception("disk full"))

        monkeypatch.setattr(audit_module, "AuditLog", broken_audit_log)

        response = await client.post(
            f"{API}/expenses",
            json={
                "business_unit_id": unit_id,
                "amount": "250.00",
                "category": "Utilities",
                "date": "2025-05-02",
            },
            headers=accountant_headers,
        )

        assert response.status_code == 201
        expense_id = uuid.UUID(response.json()["data"]["id"])

        stored = (await db_session.execute(
            select(Expense.category).where(Expense.id == expense_id)
        )).scalar_one()
        assert stored == "Utilities"
        assert (await db_session.execute(select(func.count(AuditLog.id)))).scalar() == 0


class TestAuditQueries:
    """Listing and per-record history."""

    @pytest.mark.asyncio
    async def test_entity_history_oldest_first(
        self, client, db_session, accountant_headers, ceo_headers, business_unit,
    ):
        response = await client.post(
            f"{API}/expenses",
            json={
                "business_unit_id": str(business_unit.id),
                "amount": "300.00",
                "category": "Utilities",
                "date": "2025-05-02",
            },
            headers=accountant_headers,
        )
        expense_id = response.json()["data"]["id"]

        await client.put(
            f"{API}/expenses/{expense_id}",
            json={"amount": "320.00", "date": "2025-05-02"},
            headers=accountant_headers,
        )
        await client.delete(f"{API}/expenses/{expense_id}", headers=accountant_headers)

        response = await client.get(
            f"{API}/audit-logs/history/expenses/{expense_id}",
            headers=ceo_headers,
        )

        assert response.status_code == 200
        history = response.json()["data"]
        assert [h["action"] for h in history] == ["create", "update", "delete"]
        assert history[0]["values"]["amount"] == "300.00"
        assert history[1]["changes"]["amount"] == {"old": "300.00", "new": "320.00"}
        assert "category" not in history[1]["changes"]
        assert history[2]["deleted_values"]["amount"] == "320.00"

    @pytest.mark.asyncio
    async def test_list_logs_filters(self, db_session):
        service = AuditService(db_session)
        await service.record(user_id=None, action=AuditAction.CREATE, module="expenses", entity_id="1")
        await service.record(user_id=None, action=AuditAction.CREATE, module="revenues", entity_id="2")
        await service.record(user_id=None, action=AuditAction.DELETE, module="expenses", entity_id="1")

        expenses = await service.list_logs(module="expenses")
        deletes = await service.list_logs(action=AuditAction.DELETE)
        today = await service.list_logs(start_date=date.today() - timedelta(days=1), end_date=date.today() + timedelta(days=1))

        assert [log.action for log in expenses] == [AuditAction.DELETE, AuditAction.CREATE]
        assert len(deletes) == 1
        assert len(today) == 3

    def test_calculate_changes(self):
        changes = AuditService._calculate_changes(
            {"amount": "100.00", "category": "Rent"},
            {"amount": "150.00", "category": "Rent", "vendor": "Acme"},
        )

        assert changes == {
            "amount": {"old": "100.00", "new": "150.00"},
            "vendor": {"old": None, "new": "Acme"},
        }

    @pytest.mark.asyncio
    async def test_audit_log_requires_executive(self, client, accountant_headers, admin_headers):
        denied = await client.get(f"{API}/audit-logs", headers=accountant_headers)
        allowed = await client.get(f"{API}/audit-logs", headers=admin_headers)

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["success"] is True
