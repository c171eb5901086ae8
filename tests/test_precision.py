"""
Tests for integer-cent precision — no floating point anywhere.

These tests verify that the system uses integer arithmetic exclusively
for monetary amounts. Floating point representations of money cause
rounding errors (e.g., 0.1 + 0.2 = 0.30000000000000004). By storing
everything in integer cents, we guarantee exact arithmetic.

Tests verify:
  - All amounts are integers in responses
  - Large cent values work correctly
  - Repeated small credits don't accumulate rounding errors
  - Balance = exact sum of all settled transactions
  - Fractional amounts are refused at the boundary
"""

import pytest


class TestIntegerCentPrecision:
    """Tests that all monetary operations use integer cents exactly."""

    async def test_all_amounts_are_integers(self, authenticated_client, fund):
        """Every monetary field in the response should be an integer, never a float."""
        data = await fund(authenticated_client, 1050)
        assert isinstance(data["balance_cents"], int)
        assert isinstance(data["transaction"]["amount_cents"], int)

        me = await authenticated_client.get("/users/me")
        assert isinstance(me.json()["balance_cents"], int)

    async def test_large_values(self, authenticated_client, fund):
        """Large cent values survive without overflow or precision loss."""
        # $1,000,000.00 (100 million cents)
        await fund(authenticated_client, 100_000_000)

        order = await authenticated_client.post("/orders", json={"total_cents": 99_999_999})
        paid = await authenticated_client.post(f"/orders/{order.json()['id']}/pay")
        assert paid.json()["balance_cents"] == 1  # Exactly 1 cent left

    async def test_no_rounding_errors_with_repeated_small_credits(
        self, authenticated_client, admin_client
    ):
        """In floating point 0.01 * 100 drifts; in integer cents 1 * 100 = 100."""
        for _ in range(100):
            await admin_client.post(
                f"/admin/users/{authenticated_client.user_id}/adjustments",
                json={"amount_cents": 1, "description": "Cent"},
            )

        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 100  # Exactly $1.00

    async def test_balance_equals_sum_of_settled_transactions(
        self, authenticated_client, admin_client, fund
    ):
        """$33.33 + $66.67 - $16.66 - $8.34 don't add up cleanly in float."""
        await fund(authenticated_client, 3333)
        await fund(authenticated_client, 6667)
        for total in (1666, 834):
            order = await authenticated_client.post("/orders", json={"total_cents": total})
            await authenticated_client.post(f"/orders/{order.json()['id']}/pay")

        me = await authenticated_client.get("/users/me")
        assert me.json()["balance_cents"] == 7500

        listing = await authenticated_client.get("/transactions")
        settled = [
            t["amount_cents"]
            for t in listing.json()["transactions"]
            if t["status"] in ("approved", "completed")
        ]
        assert sum(settled) == 7500

    @pytest.mark.parametrize("amount", [10.5, "12.34"])
    async def test_fractional_amounts_rejected(self, authenticated_client, amount):
        response = await authenticated_client.post(
            "/transactions/deposits",
            json={"amount_cents": amount, "bank_name": "First National", "transfer_date": "2024-01-15"},
        )
        assert response.status_code == 422
