"""Regression tests for multi-tenant isolation.

Verifies that:
  1. One owner never reads, edits or pays another owner's records
  2. Client sessions see only their own customer's non-draft documents
  3. All models are registered in models/__init__.py
"""

import pytest

from conftest import CUSTOMER, OWNER_B, headers_for

OTHER_OWNER = headers_for("admin", OWNER_B, user_id="user-b")


async def _invoice(client, headers, customer=CUSTOMER, send=True):
    invoice = (await client.post(
        "/api/invoices/",
        json={"customer_ref": customer, "items": [{"description": "Work", "rate": "100"}]},
        headers=headers,
    )).json()
    if send:
        invoice = (await client.post(
            f"/api/invoices/{invoice['id']}/transition",
            json={"status": "Unpaid"},
            headers=headers,
        )).json()
    return invoice


async def _sent_proposal(client, headers, customer=CUSTOMER):
    proposal = (await client.post(
        "/api/proposals/",
        json={"customer_ref": customer, "items": [{"description": "Plan", "rate": "50"}]},
        headers=headers,
    )).json()
    return (await client.post(
        f"/api/proposals/{proposal['id']}/transition", json={"status": "Sent"}, headers=headers,
    )).json()


def _payment_body(invoice_id, amount="25"):
    return {
        "invoice_id": invoice_id,
        "amount": amount,
        "payment_date": "2026-03-01",
        "payment_mode": "Credit Card",
        "transaction_id": "ch_123",
    }


@pytest.mark.api
@pytest.mark.asyncio
class TestOwnerIsolation:
    """Records of one owner are invisible to another."""

    async def test_documents_are_owner_scoped(self, client, admin_headers):
        invoice = await _invoice(client, admin_headers)

        resp = await client.get(f"/api/invoices/{invoice['id']}", headers=OTHER_OWNER)
        assert resp.status_code == 404
        resp = await client.patch(
            f"/api/invoices/{invoice['id']}", json={"notes": "x"}, headers=OTHER_OWNER,
        )
        assert resp.status_code == 404
        resp = await client.delete(f"/api/invoices/{invoice['id']}", headers=OTHER_OWNER)
        assert resp.status_code == 404

        listing = (await client.get("/api/invoices/", headers=OTHER_OWNER)).json()
        assert listing["total"] == 0

    async def test_numbering_is_per_owner(self, client, admin_headers):
        mine = await _invoice(client, admin_headers)
        theirs = await _invoice(client, OTHER_OWNER)
        assert mine["number"] == theirs["number"] == "INV-000001"

    async def test_cannot_pay_foreign_invoice(self, client, admin_headers):
        invoice = await _invoice(client, admin_headers)
        resp = await client.post(
            "/api/payments/", json=_payment_body(invoice["id"]), headers=OTHER_OWNER,
        )
        assert resp.status_code == 404

    async def test_payments_are_owner_scoped(self, client, admin_headers):
        invoice = await _invoice(client, admin_headers)
        payment = (await client.post(
            "/api/payments/", json=_payment_body(invoice["id"]), headers=admin_headers,
        )).json()["payment"]

        assert (await client.get("/api/payments/", headers=OTHER_OWNER)).json() == []
        resp = await client.post(f"/api/payments/{payment['id']}/refund", headers=OTHER_OWNER)
        assert resp.status_code == 404

    async def test_catalog_is_owner_scoped(self, client, admin_headers):
        item = (await client.post(
            "/api/items/", json={"description": "Hosting", "rate": "10"}, headers=admin_headers,
        )).json()
        assert (await client.get("/api/items/", headers=OTHER_OWNER)).json() == []

        proposal = (await client.post(
            "/api/proposals/", json={"customer_ref": CUSTOMER}, headers=OTHER_OWNER,
        )).json()
        resp = await client.post(
            f"/api/proposals/{proposal['id']}/items/from-catalog",
            json={"items": [{"item_id": item["id"]}]},
            headers=OTHER_OWNER,
        )
        assert resp.status_code == 404


@pytest.mark.api
@pytest.mark.asyncio
class TestClientPortal:
    """A client session is limited to its own customer and never sees drafts."""

    async def test_sees_own_non_draft_invoices(self, client, admin_headers, client_headers):
        mine = await _invoice(client, admin_headers)
        await _invoice(client, admin_headers, send=False)
        await _invoice(client, admin_headers, customer="Globex")

        listing = (await client.get("/api/client/invoices", headers=client_headers)).json()
        assert [d["id"] for d in listing["items"]] == [mine["id"]]
        assert listing["total"] == 1

    async def test_draft_and_foreign_invoices_are_not_found(
        self, client, admin_headers, client_headers,
    ):
        draft = await _invoice(client, admin_headers, send=False)
        foreign = await _invoice(client, admin_headers, customer="Globex")

        for invoice in (draft, foreign):
            resp = await client.get(f"/api/client/invoices/{invoice['id']}", headers=client_headers)
            assert resp.status_code == 404

    async def test_admin_note_stays_internal(self, client, admin_headers, client_headers):
        draft = (await client.post(
            "/api/invoices/",
            json={
                "customer_ref": CUSTOMER,
                "items": [{"description": "Work", "rate": "100"}],
                "admin_note": "slow payer",
                "bill_to": "1 Main St",
            },
            headers=admin_headers,
        )).json()
        assert draft["admin_note"] == "slow payer"
        await client.post(
            f"/api/invoices/{draft['id']}/transition",
            json={"status": "Unpaid"},
            headers=admin_headers,
        )

        body = (await client.get(
            f"/api/client/invoices/{draft['id']}", headers=client_headers,
        )).json()
        assert body["bill_to"] == "1 Main St"
        assert "admin_note" not in body

    async def test_accepts_own_proposal(self, client, admin_headers, client_headers):
        proposal = await _sent_proposal(client, admin_headers)
        resp = await client.post(
            f"/api/client/proposals/{proposal['id']}/respond",
            json={"status": "Accepted"},
            headers=client_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "Accepted"

    async def test_cannot_answer_foreign_proposal(self, client, admin_headers, client_headers):
        proposal = await _sent_proposal(client, admin_headers, customer="Globex")
        resp = await client.post(
            f"/api/client/proposals/{proposal['id']}/respond",
            json={"status": "Accepted"},
            headers=client_headers,
        )
        assert resp.status_code == 404

    async def test_pays_own_invoice(self, client, admin_headers, client_headers):
        invoice = await _invoice(client, admin_headers)
        resp = await client.post(
            "/api/client/payments", json=_payment_body(invoice["id"]), headers=client_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["invoice"]["status"] == "Partiallypaid"

        payments = (await client.get("/api/client/payments", headers=client_headers)).json()
        assert len(payments) == 1
        stats = (await client.get("/api/client/payments/stats", headers=client_headers)).json()
        assert stats["total"]["count"] == 1

    async def test_cannot_pay_foreign_invoice(self, client, admin_headers, client_headers):
        invoice = await _invoice(client, admin_headers, customer="Globex")
        resp = await client.post(
            "/api/client/payments", json=_payment_body(invoice["id"]), headers=client_headers,
        )
        assert resp.status_code == 404

    async def test_staff_token_rejected_by_portal(self, client, staff_headers):
        resp = await client.get("/api/client/invoices", headers=staff_headers)
        assert resp.status_code == 403

    async def test_client_cannot_use_admin_routes(self, client, client_headers):
        resp = await client.post(
            "/api/invoices/", json={"customer_ref": CUSTOMER}, headers=client_headers,
        )
        assert resp.status_code == 403


@pytest.mark.unit
class TestModelRegistration:
    """Verify all models are registered for migration detection."""

    def test_all_models_imported(self):
        """Every model must be imported in models/__init__.py."""
        import salesdesk.models  # noqa: F401 (triggers all imports)
        from salesdesk.database import Base

        required_tables = {
            "admin_accounts", "catalog_items", "sales_documents",
            "payments", "reconciliation_alerts",
        }

        registered = set(Base.metadata.tables.keys())
        missing = required_tables - registered
        assert not missing, f"Models not registered in models/__init__.py: {missing}"
