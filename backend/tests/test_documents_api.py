"""Proposal, estimate, credit note and invoice endpoints."""

from decimal import Decimal

import pytest

from conftest import CUSTOMER

LINES = [
    {"description": "Design", "quantity": 2, "rate": "100"},
    {"description": "Hosting", "quantity": "1", "rate": "$49.99", "tax1_rate": "10"},
]


async def _create(client, headers, path="/api/invoices/", **body):
    payload = {"customer_ref": CUSTOMER, "items": LINES, **body}
    resp = await client.post(path, json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _move(client, headers, path, doc_id, status):
    return await client.post(
        f"{path}{doc_id}/transition", json={"status": status}, headers=headers,
    )


@pytest.mark.api
@pytest.mark.asyncio
class TestCreateAndEdit:

    async def test_create_invoice_derives_totals(self, client, admin_headers):
        doc = await _create(client, admin_headers, discount_type="percent", discount_value="10")
        assert doc["kind"] == "invoice"
        assert doc["status"] == "Draft"
        assert doc["number"] == "INV-000001"
        assert doc["subtotal"] == "249.99"
        assert doc["total"] == "224.99"
        assert doc["tax"] == "0"
        assert doc["balance_due"] == "224.99"
        assert doc["items"][1]["amount"] == "49.99"

    async def test_each_kind_has_its_own_route(self, client, admin_headers):
        for path, kind, number in (
            ("/api/proposals/", "proposal", "PRO-000001"),
            ("/api/estimates/", "estimate", "EST-000001"),
            ("/api/credit-notes/", "credit_note", "CN-000001"),
        ):
            doc = await _create(client, admin_headers, path=path)
            assert doc["kind"] == kind
            assert doc["number"] == number
            assert doc["balance_due"] is None

    async def test_header_field_of_another_kind(self, client, admin_headers):
        resp = await client.post(
            "/api/proposals/",
            json={"customer_ref": CUSTOMER, "due_date": "2026-12-01"},
            headers=admin_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "due_date"

    async def test_bad_line_is_named(self, client, admin_headers):
        resp = await client.post(
            "/api/invoices/",
            json={"customer_ref": CUSTOMER, "items": [{"description": "X", "rate": "-1"}]},
            headers=admin_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "rate"

    async def test_infinite_quantity_is_a_validation_error(self, client, admin_headers):
        resp = await client.post(
            "/api/invoices/",
            json={
                "customer_ref": CUSTOMER,
                "items": [{"description": "x", "quantity": "Infinity", "rate": "1"}],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "quantity"

    @pytest.mark.parametrize("name", ["currency", "issue_date", "apply_line_taxes"])
    async def test_required_header_cannot_be_nulled(self, client, admin_headers, name):
        doc = await _create(client, admin_headers)
        resp = await client.patch(
            f"/api/invoices/{doc['id']}", json={name: None}, headers=admin_headers,
        )
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"] == {"field": name, "constraint": "is required"}

        unchanged = (await client.get(f"/api/invoices/{doc['id']}", headers=admin_headers)).json()
        assert unchanged["currency"] == doc["currency"]
        assert unchanged["issue_date"] == doc["issue_date"]

    async def test_metadata_round_trip(self, client, admin_headers):
        doc = await _create(
            client, admin_headers,
            bill_to="1 Main St", ship_to="Dock 4", sales_agent="Dana", tags="q4",
        )
        assert doc["recurring"] == "No"
        assert doc["title"] is None

        resp = await client.patch(
            f"/api/invoices/{doc['id']}",
            json={"recurring": "Every one month", "admin_note": "annual contract"},
            headers=admin_headers,
        )
        body = resp.json()
        assert body["recurring"] == "Every one month"
        assert body["admin_note"] == "annual contract"
        assert body["ship_to"] == "Dock 4"

        resp = await client.patch(
            f"/api/invoices/{doc['id']}", json={"recurring": "Weekly"}, headers=admin_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "recurring"

    async def test_patch_draft(self, client, admin_headers):
        doc = await _create(client, admin_headers)
        resp = await client.patch(
            f"/api/invoices/{doc['id']}",
            json={
                "items": [{"description": "Design", "quantity": 0, "rate": "100"}],
                "discount_type": "fixed",
                "discount_value": "30",
                "due_date": "2026-12-01",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["items"][0]["quantity"] == 1
        assert body["total"] == "70.00"
        assert body["due_date"] == "2026-12-01"
        assert body["number"] == doc["number"]

    async def test_add_from_catalog(self, client, admin_headers):
        item = (await client.post(
            "/api/items/", json={"description": "Support", "rate": "25"}, headers=admin_headers,
        )).json()
        doc = await _create(client, admin_headers, path="/api/proposals/")

        resp = await client.post(
            f"/api/proposals/{doc['id']}/items/from-catalog",
            json={"items": [{"item_id": item["id"], "quantity": 4}]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        lines = resp.json()["items"]
        assert lines[-1]["source_item_id"] == item["id"]
        assert Decimal(lines[-1]["amount"]) == Decimal("100")
        assert Decimal(resp.json()["subtotal"]) == Decimal("349.99")

    async def test_frozen_after_draft(self, client, admin_headers):
        doc = await _create(client, admin_headers, path="/api/proposals/")
        await _move(client, admin_headers, "/api/proposals/", doc["id"], "Sent")

        resp = await client.patch(
            f"/api/proposals/{doc['id']}", json={"discount_value": "5"}, headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "INVALID_STATE"

    async def test_list_is_paginated(self, client, admin_headers):
        for _ in range(3):
            await _create(client, admin_headers)
        resp = await client.get(
            "/api/invoices/", params={"limit": 2, "offset": 0}, headers=admin_headers,
        )
        body = resp.json()
        assert body["total"] == 3
        assert len(body["items"]) == 2
        assert body["limit"] == 2


@pytest.mark.api
@pytest.mark.asyncio
class TestTransitions:

    async def test_proposal_flow(self, client, admin_headers):
        doc = await _create(client, admin_headers, path="/api/proposals/")
        resp = await _move(client, admin_headers, "/api/proposals/", doc["id"], "Sent")
        assert resp.json()["status"] == "Sent"
        resp = await _move(client, admin_headers, "/api/proposals/", doc["id"], "Accepted")
        assert resp.json()["status"] == "Accepted"

        resp = await _move(client, admin_headers, "/api/proposals/", doc["id"], "Rejected")
        assert resp.status_code == 409
        assert resp.json()["error"]["details"] == {"current": "Accepted", "attempted": "Rejected"}

    async def test_empty_draft_cannot_leave(self, client, admin_headers):
        doc = await _create(client, admin_headers, items=[])
        resp = await _move(client, admin_headers, "/api/invoices/", doc["id"], "Unpaid")
        assert resp.status_code == 409
        assert "no line items" in resp.json()["error"]["message"]

    async def test_paid_only_through_ledger(self, client, admin_headers):
        doc = await _create(client, admin_headers)
        await _move(client, admin_headers, "/api/invoices/", doc["id"], "Unpaid")
        resp = await _move(client, admin_headers, "/api/invoices/", doc["id"], "Paid")
        assert resp.status_code == 409

    async def test_staff_cannot_cancel_credit_note(self, client, admin_headers, staff_headers):
        doc = await _create(client, staff_headers, path="/api/credit-notes/")
        resp = await _move(client, staff_headers, "/api/credit-notes/", doc["id"], "Issued")
        assert resp.status_code == 200
        resp = await _move(client, staff_headers, "/api/credit-notes/", doc["id"], "Cancelled")
        assert resp.status_code == 403
        resp = await _move(client, admin_headers, "/api/credit-notes/", doc["id"], "Cancelled")
        assert resp.json()["status"] == "Cancelled"

    async def test_mark_overdue(self, client, admin_headers):
        doc = await _create(client, admin_headers, due_date="2020-01-01")
        await _move(client, admin_headers, "/api/invoices/", doc["id"], "Unpaid")
        resp = await client.post("/api/invoices/mark-overdue", headers=admin_headers)
        assert resp.status_code == 200
        assert [d["status"] for d in resp.json()] == ["Overdue"]


@pytest.mark.api
@pytest.mark.asyncio
class TestDelete:

    async def test_staff_deletes_drafts_only(self, client, admin_headers, staff_headers):
        draft = await _create(client, staff_headers)
        resp = await client.delete(f"/api/invoices/{draft['id']}", headers=staff_headers)
        assert resp.status_code == 204

        sent = await _create(client, staff_headers)
        await _move(client, staff_headers, "/api/invoices/", sent["id"], "Unpaid")
        resp = await client.delete(f"/api/invoices/{sent['id']}", headers=staff_headers)
        assert resp.status_code == 403
        resp = await client.delete(f"/api/invoices/{sent['id']}", headers=admin_headers)
        assert resp.status_code == 204

    async def test_invoice_with_payments_is_kept(self, client, admin_headers):
        doc = await _create(client, admin_headers)
        await _move(client, admin_headers, "/api/invoices/", doc["id"], "Unpaid")
        await client.post(
            "/api/payments/",
            json={
                "invoice_id": doc["id"], "amount": "10", "payment_date": "2026-03-01",
                "payment_mode": "Cash", "transaction_id": "TX-1",
            },
            headers=admin_headers,
        )
        resp = await client.delete(f"/api/invoices/{doc['id']}", headers=admin_headers)
        assert resp.status_code == 409

    async def test_wrong_kind_route(self, client, admin_headers):
        doc = await _create(client, admin_headers)
        resp = await client.get(f"/api/proposals/{doc['id']}", headers=admin_headers)
        assert resp.status_code == 404
