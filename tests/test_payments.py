"""
Tests for paying orders from the wallet balance.

These tests verify:
  - A payment debits the balance, records a completed payment with a
    negative amount, and marks the order paid, all together
  - A payment larger than the balance is refused (422), leaves balance and
    order untouched, and records a `failed` payment for the audit trail
  - An order can be paid at most once
  - Paying exactly the whole balance is allowed and leaves zero
  - Members cannot pay other members' orders; admins cannot pay at all
  - Several orders can be paid with one debit, all of them or none
"""

import pytest


async def _create_order(client, total_cents: int) -> dict:
    response = await client.post("/orders", json={"total_cents": total_cents})
    assert response.status_code == 201, response.text
    return response.json()


class TestOrders:
    """Tests for the /orders endpoints."""

    async def test_create_order_is_unpaid(self, authenticated_client):
        order = await _create_order(authenticated_client, 1999)
        assert order["payment_status"] == "unpaid"
        assert order["paid_at"] is None
        assert order["order_number"].startswith("ORD-")

        listing = await authenticated_client.get("/orders")
        assert [o["id"] for o in listing.json()] == [order["id"]]

    async def test_non_positive_total_rejected(self, authenticated_client):
        response = await authenticated_client.post("/orders", json={"total_cents": 0})
        assert response.status_code == 422

    async def test_cannot_view_other_users_order(
        self, authenticated_client, second_authenticated_client
    ):
        order = await _create_order(authenticated_client, 500)

        response = await second_authenticated_client.get(f"/orders/{order['id']}")
        assert response.status_code == 403


class TestPayOrder:
    """Tests for POST /orders/{id}/pay."""

    async def test_pay_debits_balance_and_marks_order_paid(self, authenticated_client, fund):
        await fund(authenticated_client, 10000)
        order = await _create_order(authenticated_client, 2550)

        response = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert response.status_code == 200
        data = response.json()
        assert data["balance_cents"] == 7450
        payment = data["transaction"]
        assert payment["type"] == "payment"
        assert payment["status"] == "completed"
        assert payment["amount_cents"] == -2550
        assert payment["order_id"] == order["id"]
        assert order["order_number"] in payment["description"]

        paid = await authenticated_client.get(f"/orders/{order['id']}")
        assert paid.json()["payment_status"] == "paid"
        assert paid.json()["paid_at"] is not None
        assert paid.json()["payment_transaction_id"] == payment["id"]

    async def test_insufficient_balance_is_refused(self, authenticated_client, fund):
        await fund(authenticated_client, 1000)
        order = await _create_order(authenticated_client, 1001)

        response = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "insufficient_balance"
        assert body["requested_cents"] == 1001
        assert body["available_cents"] == 1000

        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 1000
        still_unpaid = await authenticated_client.get(f"/orders/{order['id']}")
        assert still_unpaid.json()["payment_status"] == "unpaid"

    async def test_refused_payment_is_recorded_as_failed(self, authenticated_client):
        order = await _create_order(authenticated_client, 300)

        response = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert response.status_code == 422

        history = await authenticated_client.get("/transactions", params={"type": "payment"})
        records = history.json()["transactions"]
        assert len(records) == 1
        assert records[0]["status"] == "failed"
        assert records[0]["amount_cents"] == -300
        assert records[0]["order_id"] == order["id"]

    async def test_failed_attempt_does_not_block_a_later_payment(
        self, authenticated_client, fund
    ):
        order = await _create_order(authenticated_client, 800)
        refused = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert refused.status_code == 422

        await fund(authenticated_client, 800)
        response = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert response.status_code == 200
        assert response.json()["balance_cents"] == 0

    async def test_order_can_only_be_paid_once(self, authenticated_client, fund):
        await fund(authenticated_client, 5000)
        order = await _create_order(authenticated_client, 1000)

        first = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert first.status_code == 200

        second = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert second.status_code == 409
        assert second.json()["error_type"] == "already_paid"

        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 4000

    async def test_paying_exact_balance_leaves_zero(self, authenticated_client, fund):
        await fund(authenticated_client, 4200)
        order = await _create_order(authenticated_client, 4200)

        response = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert response.status_code == 200
        assert response.json()["balance_cents"] == 0

    async def test_cannot_pay_other_users_order(
        self, authenticated_client, second_authenticated_client, fund
    ):
        await fund(second_authenticated_client, 5000)
        order = await _create_order(authenticated_client, 100)

        response = await second_authenticated_client.post(f"/orders/{order['id']}/pay")
        assert response.status_code == 403

        me = await second_authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 5000

    async def test_unknown_order_returns_404(self, authenticated_client):
        response = await authenticated_client.post("/orders/missing/pay")
        assert response.status_code == 404
        assert response.json()["resource"] == "order"

    async def test_admin_cannot_pay(self, admin_client):
        response = await admin_client.post("/orders/anything/pay")
        assert response.status_code == 403


class TestPayOrders:
    """Tests for POST /orders/pay."""

    async def _statuses(self, client, orders) -> list[str]:
        statuses = []
        for order in orders:
            response = await client.get(f"/orders/{order['id']}")
            statuses.append(response.json()["payment_status"])
        return statuses

    async def test_one_debit_for_the_summed_total(self, authenticated_client, fund):
        await fund(authenticated_client, 10000)
        first = await _create_order(authenticated_client, 1000)
        second = await _create_order(authenticated_client, 2500)

        response = await authenticated_client.post(
            "/orders/pay", json={"order_ids": [first["id"], second["id"]]}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["balance_cents"] == 6500
        payment = data["transaction"]
        assert payment["amount_cents"] == -3500
        assert payment["status"] == "completed"
        assert payment["order_id"] is None
        assert first["order_number"] in payment["description"]
        assert second["order_number"] in payment["description"]

        for order in (first, second):
            paid = (await authenticated_client.get(f"/orders/{order['id']}")).json()
            assert paid["payment_status"] == "paid"
            assert paid["payment_transaction_id"] == payment["id"]

        history = await authenticated_client.get("/transactions", params={"type": "payment"})
        assert history.json()["pagination"]["total"] == 1

    async def test_single_order_is_linked_like_a_direct_payment(
        self, authenticated_client, fund
    ):
        await fund(authenticated_client, 1000)
        order = await _create_order(authenticated_client, 400)

        response = await authenticated_client.post(
            "/orders/pay", json={"order_ids": [order["id"]]}
        )
        assert response.status_code == 200
        assert response.json()["transaction"]["order_id"] == order["id"]

    async def test_already_paid_order_blocks_the_whole_group(
        self, authenticated_client, fund
    ):
        await fund(authenticated_client, 5000)
        paid_before = await _create_order(authenticated_client, 1000)
        fresh = await _create_order(authenticated_client, 1500)
        await authenticated_client.post(f"/orders/{paid_before['id']}/pay")

        response = await authenticated_client.post(
            "/orders/pay", json={"order_ids": [fresh["id"], paid_before["id"]]}
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "already_paid"

        assert await self._statuses(authenticated_client, [fresh]) == ["unpaid"]
        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 4000

    async def test_unknown_order_blocks_the_whole_group(self, authenticated_client, fund):
        await fund(authenticated_client, 5000)
        order = await _create_order(authenticated_client, 1000)

        response = await authenticated_client.post(
            "/orders/pay", json={"order_ids": [order["id"], "missing"]}
        )
        assert response.status_code == 404

        assert await self._statuses(authenticated_client, [order]) == ["unpaid"]
        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 5000

    async def test_insufficient_balance_for_the_sum(self, authenticated_client, fund):
        await fund(authenticated_client, 1000)
        orders = [
            await _create_order(authenticated_client, 600),
            await _create_order(authenticated_client, 500),
        ]

        response = await authenticated_client.post(
            "/orders/pay", json={"order_ids": [o["id"] for o in orders]}
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "insufficient_balance"
        assert body["requested_cents"] == 1100
        assert body["available_cents"] == 1000

        assert await self._statuses(authenticated_client, orders) == ["unpaid", "unpaid"]
        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 1000

        history = await authenticated_client.get("/transactions", params={"type": "payment"})
        records = history.json()["transactions"]
        assert [(r["status"], r["amount_cents"]) for r in records] == [("failed", -1100)]
        assert records[0]["description"].endswith("(insufficient balance)")

    async def test_foreign_order_in_the_group(
        self, authenticated_client, second_authenticated_client, fund
    ):
        await fund(second_authenticated_client, 5000)
        own = await _create_order(second_authenticated_client, 100)
        foreign = await _create_order(authenticated_client, 100)

        response = await second_authenticated_client.post(
            "/orders/pay", json={"order_ids": [own["id"], foreign["id"]]}
        )
        assert response.status_code == 403

        assert await self._statuses(second_authenticated_client, [own]) == ["unpaid"]
        assert await self._statuses(authenticated_client, [foreign]) == ["unpaid"]

    @pytest.mark.parametrize("order_ids", [[], None])
    async def test_empty_or_missing_list_rejected(self, authenticated_client, order_ids):
        response = await authenticated_client.post(
            "/orders/pay", json={"order_ids": order_ids}
        )
        assert response.status_code == 422

    async def test_same_order_twice_rejected(self, authenticated_client, fund):
        await fund(authenticated_client, 5000)
        order = await _create_order(authenticated_client, 1000)

        response = await authenticated_client.post(
            "/orders/pay", json={"order_ids": [order["id"], order["id"]]}
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "validation_error"

        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 5000

    async def test_admin_cannot_pay(self, admin_client):
        response = await admin_client.post("/orders/pay", json={"order_ids": ["anything"]})
        assert response.status_code == 403


class TestLedgerScenario:
    """The end-to-end walk through deposits and a payment."""

    async def test_deposit_payment_and_overdraft_attempt(self, authenticated_client, fund):
        # Starting balance 100.00
        await fund(authenticated_client, 10000)

        # Approve a pending deposit of 50.00 -> 150.00
        approved = await fund(authenticated_client, 5000)
        assert approved["balance_cents"] == 15000
        assert approved["transaction"]["status"] == "approved"

        # Pay an order of 150.00 -> 0.00
        order = await _create_order(authenticated_client, 15000)
        paid = await authenticated_client.post(f"/orders/{order['id']}/pay")
        assert paid.status_code == 200
        assert paid.json()["balance_cents"] == 0
        assert paid.json()["transaction"]["amount_cents"] == -15000

        # Any further payment is refused and the balance stays at zero
        tiny = await _create_order(authenticated_client, 1)
        refused = await authenticated_client.post(f"/orders/{tiny['id']}/pay")
        assert refused.status_code == 422
        assert refused.json()["error_type"] == "insufficient_balance"

        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 0


@pytest.mark.parametrize("amount", [1, 99, 12345])
async def test_adjustment_then_full_payment_balances_to_zero(
    authenticated_client, admin_client, amount
):
    adjust = await admin_client.post(
        f"/admin/users/{authenticated_client.user_id}/adjustments",
        json={"amount_cents": amount, "description": "Goodwill credit"},
    )
    assert adjust.status_code == 201

    order = await _create_order(authenticated_client, amount)
    paid = await authenticated_client.post(f"/orders/{order['id']}/pay")
    assert paid.json()["balance_cents"] == 0
