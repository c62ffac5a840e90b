"""
Integration tests for the HTTP API.

Exercises the endpoints end to end: result-to-status mapping, error body
format, audit trail and collaborator wiring.
"""

import pytest
from decimal import Decimal

from unitledger.app.models.audit_log import AuditLog
from unitledger.app.services.audit import get_audit_trail, AuditAction
from unitledger.app.services.collaborators import TermWindow
from datetime import date


async def _balance(client, code):
    response = await client.get(f"/v1/accounts/code/{code}")
    assert response.status_code == 200
    return Decimal(response.json()["balance"])


async def _pay(client, amount, method="CASH", payment_type="SUBS", payment_id=1, **extra):
    body = {
        "payment_id": payment_id,
        "amount": amount,
        "payment_method": method,
        "payment_type": payment_type,
        "date": "2024-09-10",
    }
    body.update(extra)
    return await client.post("/v1/postings/payments", json=body)


# TEST 1: Health
@pytest.mark.asyncio
async def test_health_and_root(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

    response = await client.get("/")
    assert response.status_code == 200
    assert response.headers["X-Correlation-ID"]


# TEST 2: Accounts
@pytest.mark.asyncio
async def test_list_and_get_accounts(client, accounts):
    response = await client.get("/v1/accounts")
    assert response.status_code == 200
    assert [a["code"] for a in response.json()][:3] == ["1001", "1002", "1003"]

    response = await client.get("/v1/accounts", params={"type": "INCOME"})
    assert [a["code"] for a in response.json()] == ["4001", "4002"]

    response = await client.get("/v1/accounts/expense")
    assert len(response.json()) == 6

    response = await client.get(f"/v1/accounts/{accounts['1003'].id}")
    assert response.json()["name"] == "Bank Account"


@pytest.mark.asyncio
async def test_unknown_account_is_404(client, accounts):
    response = await client.get("/v1/accounts/9999")
    assert response.status_code == 404
    body = response.json()
    assert body["error_code"] == "ERR_NOT_FOUND_001"
    assert set(body) == {"error_code", "message", "details"}


@pytest.mark.asyncio
async def test_expense_account_lifecycle(client, accounts):
    response = await client.post("/v1/accounts/expense", json={"name": "Camp Food"}, headers={"X-Actor": "treasurer"})
    assert response.status_code == 201
    account = response.json()
    assert account["code"] == "5006"

    response = await client.put(f"/v1/accounts/expense/{account['id']}", json={"name": "Camp Catering"})
    assert response.status_code == 200
    assert response.json()["name"] == "Camp Catering"

    response = await client.delete(f"/v1/accounts/expense/{account['id']}")
    assert response.status_code == 204

    response = await client.get(f"/v1/accounts/{account['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_system_account_edit_is_conflict(client, accounts):
    response = await client.put(f"/v1/accounts/expense/{accounts['1001'].id}", json={"name": "Petty"})
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"


# TEST 3: Transactions
@pytest.mark.asyncio
async def test_post_manual_transaction(client, accounts):
    response = await client.post("/v1/transactions", json={
        "description": "Opening float",
        "date": "2024-09-01",
        "lines": [
            {"account_id": accounts["1001"].id, "debit": "20.00"},
            {"account_id": accounts["4002"].id, "credit": "20.00"},
        ],
    })
    assert response.status_code == 201
    txn = response.json()
    assert Decimal(txn["total_debits"]) == Decimal("20.00")
    assert [l["account_code"] for l in txn["lines"]] == ["1001", "4002"]

    response = await client.get(f"/v1/transactions/{txn['id']}")
    assert response.status_code == 200

    response = await client.get("/v1/transactions", params={"date_from": "2024-09-01", "date_to": "2024-09-30"})
    assert [t["id"] for t in response.json()] == [txn["id"]]

    assert await _balance(client, "1001") == Decimal("20.00")


@pytest.mark.asyncio
async def test_unbalanced_transaction_is_400(client, accounts):
    """Scenario: debits 25 / credits 20 are rejected and nothing is stored."""
    response = await client.post("/v1/transactions", json={
        "description": "Broken",
        "date": "2024-09-01",
        "lines": [
            {"account_id": accounts["1001"].id, "debit": "25.00"},
            {"account_id": accounts["4001"].id, "credit": "20.00"},
        ],
    })
    assert response.status_code == 400
    assert "not balanced" in response.json()["message"]

    assert (await client.get("/v1/transactions")).json() == []
    assert await _balance(client, "1001") == Decimal("0.00")


@pytest.mark.asyncio
async def test_transaction_with_unknown_account_is_404(client, accounts):
    response = await client.post("/v1/transactions", json={
        "description": "Ghost",
        "date": "2024-09-01",
        "lines": [
            {"account_id": 999, "debit": "5.00"},
            {"account_id": accounts["4001"].id, "credit": "5.00"},
        ],
    })
    assert response.status_code == 404
    assert "do not exist" in response.json()["message"]


@pytest.mark.asyncio
async def test_malformed_request_body_is_422(client, accounts):
    response = await client.post("/v1/transactions", json={"description": "No date"})
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


# TEST 4: Postings
@pytest.mark.asyncio
async def test_payment_posting_builds_description(client, accounts):
    response = await _pay(client, "25.00", membership_number="GU001", reference="Autumn Subs", payment_id=9)
    assert response.status_code == 201
    txn = response.json()
    assert txn["description"] == "Payment from Jane Smith - Autumn Subs"
    assert txn["payment_id"] == 9

    response = await client.get("/v1/transactions/payment/9")
    assert [t["id"] for t in response.json()] == [txn["id"]]

    assert await _balance(client, "1001") == Decimal("25.00")
    assert await _balance(client, "4001") == Decimal("25.00")


@pytest.mark.asyncio
async def test_blank_payment_description_is_built(client, accounts):
    response = await _pay(client, "5.00", membership_number="GU001", description="   ", payment_id=11)
    assert response.status_code == 201
    assert response.json()["description"] == "Payment from Jane Smith"


@pytest.mark.asyncio
async def test_bank_deposit_endpoint(client, accounts):
    await _pay(client, "100.00")
    await _pay(client, "50.00", method="CHEQUE", payment_id=2)

    response = await client.post("/v1/postings/bank-deposits", json={
        "cash_amount": "80.00", "cheque_amount": "50.00", "date": "2024-09-12",
    })
    assert response.status_code == 201
    assert await _balance(client, "1003") == Decimal("130.00")

    response = await client.post("/v1/postings/bank-deposits", json={
        "cash_amount": "100.00", "date": "2024-09-13",
    })
    assert response.status_code == 409
    assert "Insufficient cash" in response.json()["message"]
    assert await _balance(client, "1001") == Decimal("20.00")


# TEST 5: Expenses and claims
@pytest.mark.asyncio
async def test_direct_expense_endpoints(client, accounts):
    await _pay(client, "50.00")
    response = await client.post("/v1/expenses", json={
        "date": "2024-09-14",
        "amount": "15.00",
        "expense_account_id": accounts["5001"].id,
        "description": "Craft paper",
        "paid_from_account_id": accounts["1001"].id,
    })
    assert response.status_code == 201
    expense = response.json()
    assert expense["expense_account_code"] == "5001"
    assert expense["transaction_id"] is not None

    assert len((await client.get("/v1/expenses")).json()) == 1

    response = await client.delete(f"/v1/expenses/{expense['id']}")
    assert response.status_code == 204
    assert await _balance(client, "1001") == Decimal("50.00")
    assert (await client.get(f"/v1/expenses/{expense['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_claim_workflow(client, accounts):
    await _pay(client, "100.00", method="BANK_TRANSFER")

    response = await client.post("/v1/claims", json={"claimed_by": "Brown Owl", "submitted_date": "2024-10-01"})
    assert response.status_code == 201
    claim_id = response.json()["id"]

    for category, amount in [("5003", "10.00"), ("5003", "15.00"), ("5001", "5.00")]:
        response = await client.post(f"/v1/claims/{claim_id}/expenses", json={
            "date": "2024-09-28",
            "amount": amount,
            "expense_account_id": accounts[category].id,
            "description": "Receipt",
        })
        assert response.status_code == 201
    extra_id = response.json()["id"]

    # Claim expenses cannot be deleted as direct expenses
    response = await client.delete(f"/v1/expenses/{extra_id}")
    assert response.status_code == 409
    assert "claim" in response.json()["message"]

    response = await client.post(f"/v1/claims/{claim_id}/submit")
    assert response.status_code == 200
    assert response.json()["status"] == "SUBMITTED"

    response = await client.post(f"/v1/claims/{claim_id}/settle", json={
        "paid_from_account_id": accounts["1003"].id,
        "payment_method": "BANK_TRANSFER",
        "settled_date": "2024-10-05",
    })
    assert response.status_code == 200
    claim = response.json()
    assert claim["status"] == "SETTLED"
    assert Decimal(claim["total_amount"]) == Decimal("30.00")

    txn = (await client.get(f"/v1/transactions/{claim['transaction_id']}")).json()
    assert len([l for l in txn["lines"] if Decimal(l["debit"]) > 0]) == 2
    assert len([l for l in txn["lines"] if Decimal(l["credit"]) > 0]) == 1
    assert await _balance(client, "1003") == Decimal("70.00")

    response = await client.post(f"/v1/claims/{claim_id}/settle", json={
        "paid_from_account_id": accounts["1003"].id,
        "payment_method": "BANK_TRANSFER",
        "settled_date": "2024-10-06",
    })
    assert response.status_code == 409

    response = await client.delete(f"/v1/claims/{claim_id}")
    assert response.status_code == 409
    assert "settled" in response.json()["message"]

    response = await client.get("/v1/claims", params={"status": "SETTLED"})
    assert [c["id"] for c in response.json()] == [claim_id]


@pytest.mark.asyncio
async def test_remove_claim_expense_and_delete_claim(client, accounts):
    claim_id = (await client.post("/v1/claims", json={
        "claimed_by": "Tawny Owl", "submitted_date": "2024-10-01",
    })).json()["id"]
    expense_id = (await client.post(f"/v1/claims/{claim_id}/expenses", json={
        "date": "2024-09-28", "amount": "4.00",
        "expense_account_id": accounts["5002"].id, "description": "Torch",
    })).json()["id"]

    response = await client.delete(f"/v1/claims/expenses/{expense_id}")
    assert response.status_code == 204
    assert (await client.get(f"/v1/claims/{claim_id}")).json()["expenses"] == []

    response = await client.post(f"/v1/claims/{claim_id}/settle", json={
        "paid_from_account_id": accounts["1001"].id,
        "payment_method": "CASH",
        "settled_date": "2024-10-05",
    })
    assert response.status_code == 400
    assert "no expenses" in response.json()["message"]

    response = await client.delete(f"/v1/claims/{claim_id}")
    assert response.status_code == 204
    assert (await client.get(f"/v1/claims/{claim_id}")).status_code == 404


# TEST 6: Reports
@pytest.mark.asyncio
async def test_reports(client, accounts, term_calendar, meeting_directory):
    term_calendar.term = TermWindow(date(2024, 9, 1), date(2024, 12, 20))
    meeting_directory.add_meeting(3, "Sleepover", date(2024, 9, 20), paid_income=Decimal("45.00"))

    await _pay(client, "60.00")
    await _pay(client, "45.00", payment_type="ACTIVITY", payment_id=2)
    await client.post("/v1/expenses", json={
        "date": "2024-09-20", "amount": "20.00",
        "expense_account_id": accounts["5004"].id, "description": "Snacks",
        "paid_from_account_id": accounts["1001"].id, "meeting_id": 3,
    })

    income = (await client.get("/v1/reports/income", params={
        "date_from": "2024-09-01", "date_to": "2024-09-30",
    })).json()
    assert Decimal(income["total_income"]) == Decimal("105.00")

    expenses = (await client.get("/v1/reports/expenses", params={
        "date_from": "2024-09-01", "date_to": "2024-09-30",
    })).json()
    assert Decimal(expenses["total_expenses"]) == Decimal("20.00")
    assert expenses["lines"][0]["transaction_count"] == 1

    dashboard = (await client.get("/v1/reports/dashboard")).json()
    assert Decimal(dashboard["cash_on_hand"]) == Decimal("85.00")
    assert Decimal(dashboard["total_income_this_term"]) == Decimal("105.00")
    assert Decimal(dashboard["total_expenses_this_term"]) == Decimal("20.00")

    event = (await client.get("/v1/reports/events/3")).json()
    assert Decimal(event["net_position"]) == Decimal("25.00")
    assert (await client.get("/v1/reports/events/99")).status_code == 404

    response = await client.get("/v1/reports/income", params={
        "date_from": "2024-09-30", "date_to": "2024-09-01",
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_ledger_integrity_endpoint(client, accounts):
    await _pay(client, "10.00")
    report = (await client.get("/v1/ledger/integrity")).json()
    assert report["is_consistent"] is True
    assert report["transactions_checked"] == 1


# TEST 7: Audit trail
@pytest.mark.asyncio
async def test_postings_are_audited(client, accounts, session_factory):
    response = await _pay(client, "10.00")
    assert response.status_code == 201
    await client.post("/v1/accounts/expense", json={"name": "Transport"}, headers={"X-Actor": "treasurer"})

    async with session_factory() as db:
        payments = await get_audit_trail(db, action=AuditAction.PAYMENT_POSTED)
        created = await get_audit_trail(db, action=AuditAction.EXPENSE_ACCOUNT_CREATED)

    assert len(payments) == 1
    assert payments[0].entity_id == response.json()["id"]
    assert created[0].actor_username == "treasurer"
    assert isinstance(created[0], AuditLog)


@pytest.mark.asyncio
async def test_expense_deletion_audits_reversal(client, accounts, session_factory):
    await _pay(client, "40.00")
    response = await client.post("/v1/expenses", json={
        "date": "2024-09-14",
        "amount": "12.00",
        "expense_account_id": accounts["5003"].id,
        "description": "Badges",
        "paid_from_account_id": accounts["1001"].id,
    })
    expense = response.json()

    response = await client.delete(f"/v1/expenses/{expense['id']}", headers={"X-Actor": "treasurer"})
    assert response.status_code == 204

    async with session_factory() as db:
        deleted = await get_audit_trail(db, action=AuditAction.EXPENSE_DELETED)
        reversed_ = await get_audit_trail(db, action=AuditAction.TRANSACTION_REVERSED)

    assert deleted[0].entity_id == expense["id"]
    assert deleted[0].meta_data == {"transaction_id": expense["transaction_id"]}
    assert len(reversed_) == 1
    assert reversed_[0].entity_type == "transaction"
    assert reversed_[0].entity_id == expense["transaction_id"]
    assert reversed_[0].actor_username == "treasurer"
