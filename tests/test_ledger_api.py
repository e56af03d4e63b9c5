"""
Finance Tracker - Ledger API Tests

End-to-end tests for revenues, expenses and invoices through the write
pipeline: period guard, approval policy, persistence and audit.
"""

import uuid
from datetime import date

import pytest
from sqlalchemy import func, select

from app.models.approval import ApprovalRequest, ApprovalStatus
from app.models.audit import AuditAction, AuditLog
from app.models.business_unit import BusinessUnit
from app.models.entity_ref import ENTITY_MODELS, EntityKind, resolve_entity_model
from app.models.transaction import EntryApprovalStatus, Expense
from app.services.ledger_service import ALLOWED_UPDATE_FIELDS, LedgerService, allowed_create_fields
from app.utils.error_handling import ValidationException


API = "/api/v1"


def expense_payload(business_unit, **overrides):
    payload = {
        "business_unit_id": str(business_unit.id),
        "amount": "15000",
        "category": "Office Supplies",
        "date": "2025-03-15",
        "description": "Printer and paper",
    }
    payload.update(overrides)
    return payload


class TestCreate:
    """Creating records."""

    @pytest.mark.asyncio
    async def test_high_value_expense_opens_approval(
        self, client, db_session, accountant_headers, accountant_user, business_unit,
    ):
        requester_id = accountant_user.id

        response = await client.post(
            f"{API}/expenses", json=expense_payload(business_unit), headers=accountant_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["approval_status"] == "pending"
        assert body["data"]["amount"] == "15000.00"
        assert body["approval"]["requiresApproval"] is True
        assert body["approval"]["approvalReason"] == "High value transaction: Rs. 15,000"
        assert body["approval"]["approvalStatus"] == "pending"

        expense_id = uuid.UUID(body["data"]["id"])
        approvals = (await db_session.execute(select(ApprovalRequest))).scalars().all()
        assert len(approvals) == 1
        assert approvals[0].entity_type == EntityKind.EXPENSE
        assert approvals[0].entity_id == expense_id
        assert approvals[0].status == ApprovalStatus.PENDING
        assert approvals[0].comments == "High value transaction: Rs. 15,000"
        assert approvals[0].requested_by_id == requester_id
        assert body["approval"]["approvalId"] == str(approvals[0].id)

        logs = (await db_session.execute(select(AuditLog))).scalars().all()
        assert len(logs) == 1
        assert logs[0].action == AuditAction.CREATE
        assert logs[0].module == "expenses"
        assert logs[0].entity_id == str(expense_id)
        assert logs[0].new_values["approval_status"] == "pending"
        assert logs[0].old_values is None

    @pytest.mark.asyncio
    async def test_ordinary_expense_needs_no_approval(
        self, client, db_session, accountant_headers, business_unit,
    ):
        response = await client.post(
            f"{API}/expenses",
            json=expense_payload(business_unit, amount="480.25"),
            headers=accountant_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["data"]["approval_status"] == "na"
        assert body["approval"] == {
            "requiresApproval": False,
            "approvalReason": None,
            "approvalStatus": "na",
            "approvalId": None,
        }
        assert (await db_session.execute(select(func.count(ApprovalRequest.id)))).scalar() == 0

    @pytest.mark.asyncio
    async def test_sensitive_revenue_category(self, client, accountant_headers, business_unit):
        response = await client.post(
            f"{API}/revenues",
            json={
                "business_unit_id": str(business_unit.id),
                "amount": "200.00",
                "category": "Adjustment",
                "date": "2025-06-01",
            },
            headers=accountant_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Revenue recorded successfully"
        assert body["data"]["payment_status"] == "paid"
        assert body["approval"]["approvalReason"] == "Sensitive category: Adjustment"

    @pytest.mark.asyncio
    async def test_invoice_create_and_duplicate_number(
        self, client, db_session, accountant_headers, business_unit,
    ):
        payload = {
            "business_unit_id": str(business_unit.id),
            "amount": "1200.00",
            "category": "Membership",
            "date": "2025-06-01",
            "invoice_number": "INV-0001",
            "client_name": "Acme Ltd",
            "due_date": "2025-06-30",
        }

        first = await client.post(f"{API}/invoices", json=payload, headers=accountant_headers)
        second = await client.post(f"{API}/invoices", json=payload, headers=accountant_headers)
        await db_session.rollback()

        assert first.status_code == 201
        assert first.json()["data"]["status"] == "draft"
        assert first.json()["data"]["due_date"] == "2025-06-30"
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "DUPLICATE_ENTRY"

    @pytest.mark.asyncio
    async def test_unknown_business_unit(self, client, accountant_headers, business_unit):
        response = await client.post(
            f"{API}/expenses",
            json=expense_payload(business_unit, business_unit_id=str(uuid.uuid4()), amount="10"),
            headers=accountant_headers,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_inactive_business_unit(self, client, db_session, accountant_headers):
        unit = BusinessUnit(name="Closed Shop", code="CLOSED", is_active=False)
        db_session.add(unit)
        await db_session.commit()

        response = await client.post(
            f"{API}/expenses",
            json=expense_payload(unit, amount="10"),
            headers=accountant_headers,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5", "abc", "1.234"])
    async def test_invalid_amount(self, client, accountant_headers, business_unit, amount):
        response = await client.post(
            f"{API}/expenses",
            json=expense_payload(business_unit, amount=amount),
            headers=accountant_headers,
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert any(e["field"].endswith("amount") for e in body["error"]["details"]["errors"])

    @pytest.mark.asyncio
    async def test_viewer_cannot_write(self, client, viewer_headers, business_unit):
        response = await client.post(
            f"{API}/expenses",
            json=expense_payload(business_unit, amount="10"),
            headers=viewer_headers,
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unauthenticated(self, client, business_unit):
        response = await client.post(f"{API}/expenses", json=expense_payload(business_unit))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"


class TestUpdate:
    """Updating records."""

    @pytest.mark.asyncio
    async def test_plain_update(self, client, db_session, accountant_headers, expense_factory):
        expense = await expense_factory(amount="100.00", on=date(2025, 4, 10))

        response = await client.put(
            f"{API}/expenses/{expense.id}",
            json={"amount": "120.00", "vendor": "Stationers", "date": "2025-04-10"},
            headers=accountant_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["amount"] == "120.00"
        assert body["data"]["vendor"] == "Stationers"
        assert body["data"]["approval_status"] == "na"
        assert body["approval"]["requiresApproval"] is False

        log = (await db_session.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.UPDATE)
        )).scalar_one()
        assert log.old_values["amount"] == "100.00"
        assert log.new_values["amount"] == "120.00"

    @pytest.mark.asyncio
    async def test_update_to_high_value_goes_back_to_pending(
        self, client, db_session, accountant_headers, expense_factory,
    ):
        expense = await expense_factory(
            amount="100.00", on=date(2025, 4, 10), approval_status=EntryApprovalStatus.APPROVED,
        )
        expense_id = expense.id

        response = await client.put(
            f"{API}/expenses/{expense_id}",
            json={"amount": "25000.00", "date": "2025-04-10"},
            headers=accountant_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["approval_status"] == "pending"
        approval = (await db_session.execute(select(ApprovalRequest))).scalar_one()
        assert approval.entity_id == expense_id
        assert approval.comments == "High value transaction: Rs. 25,000"

    @pytest.mark.asyncio
    async def test_explicit_null_clears_optional_fields(
        self, client, db_session, accountant_headers, expense_factory,
    ):
        expense = await expense_factory(on=date(2025, 4, 10))
        expense_id = expense.id
        await client.put(
            f"{API}/expenses/{expense_id}",
            json={"vendor": "Stationers", "description": "Paper", "date": "2025-04-10"},
            headers=accountant_headers,
        )

        response = await client.put(
            f"{API}/expenses/{expense_id}",
            json={"vendor": None, "description": None, "date": "2025-04-10"},
            headers=accountant_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["vendor"] is None
        vendor, description = (await db_session.execute(
            select(Expense.vendor, Expense.description).where(Expense.id == expense_id)
        )).one()
        assert vendor is None
        assert description is None

    @pytest.mark.asyncio
    async def test_null_required_field_rejected(self, client, accountant_headers, expense_factory):
        expense = await expense_factory(on=date(2025, 4, 10))

        response = await client.put(
            f"{API}/expenses/{expense.id}",
            json={"amount": None, "date": "2025-04-10"},
            headers=accountant_headers,
        )

        assert response.status_code == 422
        assert "Fields cannot be cleared: amount" in response.json()["error"]["details"]["errors"][0]["message"]

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, client, accountant_headers, expense_factory):
        expense = await expense_factory()

        response = await client.put(
            f"{API}/expenses/{expense.id}",
            json={"business_unit_id": str(uuid.uuid4()), "date": "2025-03-15"},
            headers=accountant_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invoice_number_is_create_only(self, client, accountant_headers):
        response = await client.put(
            f"{API}/invoices/{uuid.uuid4()}",
            json={"invoice_number": "INV-9"},
            headers=accountant_headers,
        )

        assert response.status_code == 422

    def test_service_allow_list(self):
        service = LedgerService(db=None)

        service.check_update_fields(EntityKind.REVENUE, {"amount": 1, "payment_status": "paid"})
        with pytest.raises(ValidationException) as exc_info:
            service.check_update_fields(EntityKind.REVENUE, {"vendor": "x", "approval_status": "approved"})

        assert exc_info.value.details == {"disallowed_fields": ["approval_status", "vendor"]}

    def test_every_kind_is_registered(self):
        assert set(ENTITY_MODELS) == set(EntityKind)
        assert set(ALLOWED_UPDATE_FIELDS) == set(EntityKind)

        for kind in EntityKind:
            model = resolve_entity_model(kind)
            create_fields = allowed_create_fields(kind)
            assert "business_unit_id" in create_fields
            assert ALLOWED_UPDATE_FIELDS[kind] < create_fields
            assert create_fields <= set(model.__table__.columns.keys())

    @pytest.mark.asyncio
    async def test_update_missing_record(self, client, accountant_headers):
        response = await client.put(
            f"{API}/expenses/{uuid.uuid4()}",
            json={"amount": "10.00", "date": "2025-03-15"},
            headers=accountant_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestDeleteAndRead:
    @pytest.mark.asyncio
    async def test_delete_keeps_approval_history(
        self, client, db_session, accountant_headers, business_unit,
    ):
        created = await client.post(
            f"{API}/expenses", json=expense_payload(business_unit), headers=accountant_headers,
        )
        expense_id = created.json()["data"]["id"]

        response = await client.delete(f"{API}/expenses/{expense_id}", headers=accountant_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Expense deleted successfully"
        assert (await db_session.execute(select(func.count(Expense.id)))).scalar() == 0
        assert (await db_session.execute(select(func.count(ApprovalRequest.id)))).scalar() == 1

        log = (await db_session.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.DELETE)
        )).scalar_one()
        assert log.old_values["id"] == expense_id
        assert log.new_values is None

        missing = await client.get(f"{API}/expenses/{expense_id}", headers=accountant_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_list_with_filters(self, client, viewer_headers, expense_factory):
        await expense_factory(amount="10.00", category="Rent", on=date(2025, 1, 5))
        await expense_factory(amount="20.00", category="Rent", on=date(2025, 2, 5))
        await expense_factory(
            amount="30.00", category="Utilities", on=date(2025, 2, 9),
            approval_status=EntryApprovalStatus.PENDING,
        )

        everything = await client.get(f"{API}/expenses", headers=viewer_headers)
        rent = await client.get(f"{API}/expenses?category=Rent", headers=viewer_headers)
        february = await client.get(
            f"{API}/expenses?start_date=2025-02-01&end_date=2025-02-28", headers=viewer_headers,
        )
        pending = await client.get(f"{API}/expenses?approval_status=pending", headers=viewer_headers)

        assert everything.json()["total"] == 3
        assert [e["date"] for e in everything.json()["data"]] == ["2025-02-09", "2025-02-05", "2025-01-05"]
        assert rent.json()["total"] == 2
        assert february.json()["total"] == 2
        assert [e["amount"] for e in pending.json()["data"]] == ["30.00"]


class TestEnvelope:
    """Error envelope and request correlation."""

    @pytest.mark.asyncio
    async def test_request_id_in_body_and_header(self, client, ceo_headers):
        response = await client.get(f"{API}/expenses/{uuid.uuid4()}", headers=ceo_headers)

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["requestId"] == response.headers["X-Request-ID"]
        assert set(body["error"]) >= {"code", "type", "timestamp"}

    @pytest.mark.asyncio
    async def test_successful_responses_carry_request_id(self, client):
        response = await client.get("/api")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_each_request_gets_a_new_id(self, client):
        first = await client.get("/api")
        second = await client.get("/api")

        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]
