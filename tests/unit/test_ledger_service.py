"""
Unit tests for LedgerService: signed adjustments, admin adjustments and
the daily login bonus.
"""

import asyncio

import pytest

from src.core.config.manager import ConfigManager
from src.modules.shared.exceptions import NotAuthorizedError, ValidationError
from tests.conftest import seed_user

DAY = 86_400


@pytest.mark.unit
@pytest.mark.asyncio
class TestAdjustBalance:
    async def test_missing_record_starts_at_zero(self, container):
        assert await container.ledger.get_balance("nobody") == 0

    async def test_first_adjustment_creates_balance(self, container):
        new_balance = await container.ledger.adjust_balance("u1", 3)

        assert new_balance == 3
        assert await container.ledger.get_balance("u1") == 3

    async def test_signed_adjustments_compose(self, container):
        await container.ledger.adjust_balance("u1", 5)
        await container.ledger.adjust_balance("u1", -2)
        await container.ledger.adjust_balance("u1", 0.5)

        assert await container.ledger.get_balance("u1") == 3.5

    async def test_concurrent_adjustments_are_additive(self, container):
        await asyncio.gather(*(container.ledger.adjust_balance("u1", 1) for _ in range(50)))
        await asyncio.gather(*(container.ledger.adjust_balance("u1", -1) for _ in range(20)))

        assert await container.ledger.get_balance("u1") == 30

    async def test_adjustment_keeps_other_fields(self, container):
        await seed_user(container, "u1")

        await container.ledger.adjust_balance("u1", 2)

        profile = await container.profiles.require_profile("u1")
        assert profile.display_name == "u1"
        assert profile.currency == 2

    async def test_non_numeric_delta_rejected(self, container):
        with pytest.raises(ValidationError):
            await container.ledger.adjust_balance("u1", "10")
        with pytest.raises(ValidationError):
            await container.ledger.adjust_balance("u1", True)

    async def test_adjustment_event(self, container, events):
        events.listen("ledger.adjusted")

        await container.ledger.adjust_balance("u1", 4, reason="test")

        assert events.payloads["ledger.adjusted"] == [
            {"user_id": "u1", "delta": 4, "new_balance": 4, "reason": "test"}
        ]


@pytest.mark.unit
@pytest.mark.asyncio
class TestAdminAdjustBalance:
    async def test_admin_can_adjust_other_user(self, container):
        await seed_user(container, "admin", admin=True)
        await seed_user(container, "u1", currency=1)

        new_balance = await container.ledger.admin_adjust_balance("admin", "u1", 9)

        assert new_balance == 10

    async def test_non_admin_rejected_before_write(self, container):
        await seed_user(container, "u1")
        await seed_user(container, "u2", currency=1)

        with pytest.raises(NotAuthorizedError):
            await container.ledger.admin_adjust_balance("u1", "u2", 100)

        assert await container.ledger.get_balance("u2") == 1


@pytest.mark.unit
@pytest.mark.asyncio
class TestDailyBonus:
    async def test_first_claim_without_timestamp(self, container):
        assert await container.ledger.claim_daily_bonus("u1") is True
        assert await container.ledger.get_balance("u1") == 5

    async def test_second_claim_inside_window_declined(self, container, clock):
        await container.ledger.claim_daily_bonus("u1")
        clock.advance(DAY - 1)

        assert await container.ledger.claim_daily_bonus("u1") is False
        assert await container.ledger.get_balance("u1") == 5

    async def test_exactly_one_window_is_not_enough(self, container, clock):
        await container.ledger.claim_daily_bonus("u1")
        clock.advance(DAY)

        assert await container.ledger.claim_daily_bonus("u1") is False

    async def test_claim_after_window(self, container, clock):
        await container.ledger.claim_daily_bonus("u1")
        clock.advance(DAY + 1)

        assert await container.ledger.claim_daily_bonus("u1") is True
        assert await container.ledger.get_balance("u1") == 10

    async def test_claim_stores_timestamp_and_keeps_balance(self, container, clock):
        await seed_user(container, "u1", currency=2)

        await container.ledger.claim_daily_bonus("u1")

        profile = await container.profiles.require_profile("u1")
        assert profile.currency == 7
        assert profile.last_bonus_claim_at == clock.now

    async def test_amount_is_configurable(self, container):
        await ConfigManager.set("ledger.daily_bonus.amount", 12)

        await container.ledger.claim_daily_bonus("u1")

        assert await container.ledger.get_balance("u1") == 12
