"""Payment ledger endpoints: recording, completion, refunds, removal."""

from decimal import Decimal

import pytest

from conftest import CUSTOMER


async def _unpaid_invoice(client, headers, rate="100"):
    resp = await client.post(
        "/api/invoices/",
        json={"customer_ref": CUSTOMER, "items": [{"description": "Work", "rate": rate}]},
        headers=headers,
    )
    invoice = resp.json()
    resp = await client.post(
        f"/api/invoices/{invoice['id']}/transition", json={"status": "Unpaid"}, headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _pay(client, headers, invoice_id, amount, tx="TX-1", **extra):
    return await client.post(
        "/api/payments/",
        json={
            "invoice_id": invoice_id,
            "amount": amount,
            "payment_date": "2026-03-01",
            "payment_mode": "Bank",
            "transaction_id": tx,
            **extra,
        },
        headers=headers,
    )


@pytest.mark.api
@pytest.mark.asyncio
class TestRecordPayment:

    async def test_partial_then_full(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)

        resp = await _pay(client, admin_headers, invoice["id"], "40")
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["invoice"]["status"] == "Partiallypaid"
        assert Decimal(body["invoice"]["balance_due"]) == Decimal("60")
        assert body["payment"]["number"] == "PAY-000001"
        assert body["payment"]["invoice_number"] == invoice["number"]

        resp = await _pay(client, admin_headers, invoice["id"], "60", tx="TX-2")
        body = resp.json()
        assert body["invoice"]["status"] == "Paid"
        assert Decimal(body["invoice"]["paid_amount"]) == Decimal("100")
        assert Decimal(body["invoice"]["balance_due"]) == 0

    async def test_overpayment_rejected(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        resp = await _pay(client, admin_headers, invoice["id"], "100.01")
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "amount"

    async def test_sub_cent_amount_rejected(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        resp = await _pay(client, admin_headers, invoice["id"], "10.005")
        assert resp.status_code == 422

    async def test_unknown_mode_rejected(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        resp = await _pay(client, admin_headers, invoice["id"], "10", payment_mode="Barter")
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "payment_mode"

    async def test_draft_invoice_cannot_be_paid(self, client, admin_headers):
        draft = (await client.post(
            "/api/invoices/",
            json={"customer_ref": CUSTOMER, "items": [{"description": "Work", "rate": "10"}]},
            headers=admin_headers,
        )).json()
        resp = await _pay(client, admin_headers, draft["id"], "10")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "INVALID_STATE"

    async def test_pending_leaves_invoice_until_completed(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        resp = await _pay(client, admin_headers, invoice["id"], "100", status="Pending")
        body = resp.json()
        assert body["invoice"]["status"] == "Unpaid"
        assert body["payment"]["status"] == "Pending"

        resp = await client.post(
            f"/api/payments/{body['payment']['id']}/complete", headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["invoice"]["status"] == "Paid"
        assert resp.json()["payment"]["status"] == "Completed"

    async def test_failed_payment(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        payment = (await _pay(
            client, admin_headers, invoice["id"], "50", status="Pending",
        )).json()["payment"]

        resp = await client.post(f"/api/payments/{payment['id']}/fail", headers=admin_headers)
        assert resp.json()["status"] == "Failed"

        resp = await client.post(f"/api/payments/{payment['id']}/complete", headers=admin_headers)
        assert resp.status_code == 409


@pytest.mark.api
@pytest.mark.asyncio
class TestRefundAndRemove:

    async def test_refund_reopens_invoice(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        await _pay(client, admin_headers, invoice["id"], "40")
        second = (await _pay(client, admin_headers, invoice["id"], "60", tx="TX-2")).json()

        resp = await client.post(
            f"/api/payments/{second['payment']['id']}/refund", headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["payment"]["status"] == "Refunded"
        assert body["invoice"]["status"] == "Partiallypaid"
        assert Decimal(body["invoice"]["paid_amount"]) == Decimal("40")

        resp = await client.post(
            f"/api/payments/{second['payment']['id']}/refund", headers=admin_headers,
        )
        assert resp.status_code == 409

    async def test_staff_cannot_refund(self, client, staff_headers):
        invoice = await _unpaid_invoice(client, staff_headers)
        payment = (await _pay(client, staff_headers, invoice["id"], "40")).json()["payment"]
        resp = await client.post(f"/api/payments/{payment['id']}/refund", headers=staff_headers)
        assert resp.status_code == 403

    async def test_remove_payment(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        payment = (await _pay(client, admin_headers, invoice["id"], "100")).json()["payment"]

        resp = await client.delete(f"/api/payments/{payment['id']}", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["payment"] is None
        assert body["invoice"]["status"] == "Unpaid"
        assert Decimal(body["invoice"]["paid_amount"]) == 0

        resp = await client.get(f"/api/payments/{payment['id']}", headers=admin_headers)
        assert resp.status_code == 404


@pytest.mark.api
@pytest.mark.asyncio
class TestPaymentReads:

    async def test_list_and_filter(self, client, admin_headers):
        first = await _unpaid_invoice(client, admin_headers)
        second = await _unpaid_invoice(client, admin_headers)
        await _pay(client, admin_headers, first["id"], "10")
        await _pay(client, admin_headers, second["id"], "20", tx="TX-2", status="Pending")

        resp = await client.get("/api/payments/", headers=admin_headers)
        assert len(resp.json()) == 2

        resp = await client.get(
            "/api/payments/", params={"invoice_id": first["id"]}, headers=admin_headers,
        )
        assert [p["invoice_id"] for p in resp.json()] == [first["id"]]

        resp = await client.get("/api/payments/", params={"status": "Pending"}, headers=admin_headers)
        assert [p["invoice_id"] for p in resp.json()] == [second["id"]]

    async def test_stats(self, client, admin_headers):
        invoice = await _unpaid_invoice(client, admin_headers)
        await _pay(client, admin_headers, invoice["id"], "30")
        await _pay(client, admin_headers, invoice["id"], "20", tx="TX-2", status="Pending")

        stats = (await client.get("/api/payments/stats", headers=admin_headers)).json()
        assert stats["total"]["count"] == 2
        assert Decimal(stats["total"]["total_amount"]) == Decimal("50")
        assert stats["by_status"]["Completed"] == 1
        assert stats["by_status"]["Pending"] == 1
        assert stats["by_status"]["Refunded"] == 0
        assert Decimal(stats["amount_by_status"]["Completed"]) == Decimal("30")

    async def test_derived_from_invoice_status(self, client, admin_headers):
        paid = await _unpaid_invoice(client, admin_headers)
        partial = await _unpaid_invoice(client, admin_headers)
        await _unpaid_invoice(client, admin_headers)
        await _pay(client, admin_headers, paid["id"], "100")
        await _pay(client, admin_headers, partial["id"], "25", tx="TX-2")

        derived = (await client.get("/api/payments/derived", headers=admin_headers)).json()
        kinds = {p["invoice_id"]: p["derived_kind"] for p in derived}
        assert kinds == {paid["id"]: "full", partial["id"]: "partial"}
        assert all(p["number"] is None for p in derived)

    async def test_client_role_uses_portal(self, client, client_headers):
        resp = await client.get("/api/payments/", headers=client_headers)
        assert resp.status_code == 403
