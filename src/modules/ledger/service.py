"""
LedgerService - currency movements
==================================

Handles:
- Signed balance adjustments (`adjust_balance`)
- Admin adjustments of another user's balance
- The daily login bonus with its 24-hour window

All balance writes go through the store's increment primitive; nothing in
this module reads a balance and writes it back, so concurrent debits and
credits compose additively. The daily bonus claim is one merged write that
sets the new claim timestamp and increments the balance together.

The balance model is client-authoritative: any caller that can reach
`adjust_balance` can move currency. Moving that check behind a server
boundary would change observable behaviour and is deliberately not done here.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable, Union

from src.core.store.base import Increment
from src.modules.profile.service import USERS_COLLECTION
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.core.store.base import DocumentStore
    from src.modules.profile.service import ProfileService

Number = Union[int, float]


class LedgerService(BaseService):
    """
    Ledger primitives over the `currency` field of `users/{user_id}`.

    Business Logic
    --------------
    - A missing record is created by the first adjustment with `delta` as
      its starting balance.
    - Daily bonus eligibility uses the stored `lastBonusClaimAt`, read fresh;
      a missing timestamp counts as epoch 0.
    """

    def __init__(
        self,
        store: DocumentStore,
        profiles: ProfileService,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._profiles = profiles
        self._clock = clock

    async def get_balance(self, user_id: str) -> Number:
        """Current balance; 0 when the user has no record yet."""
        self.validate_identifier(user_id, "user_id")
        document = await self._store.get_document(USERS_COLLECTION, user_id)
        if document is None:
            return 0
        return document.get("currency", 0) or 0

    async def adjust_balance(
        self,
        user_id: str,
        delta: Number,
        reason: str = "adjustment",
    ) -> Number:
        """
        Apply a signed additive adjustment to the user's balance.

        Returns:
            The balance after the increment.

        Raises:
            ValidationError: Invalid user id or non-numeric delta
            StorageUnavailableError: Store unreachable (nothing was written)
        """
        self.validate_identifier(user_id, "user_id")
        self.validate_number(delta, "delta")

        self.log_operation("adjust_balance", user_id=user_id, delta=delta, reason=reason)

        new_balance = await self._store.atomic_increment(
            USERS_COLLECTION, user_id, "currency", delta
        )

        await self.emit_event(
            "ledger.adjusted",
            {
                "user_id": user_id,
                "delta": delta,
                "new_balance": new_balance,
                "reason": reason,
            },
        )

        self.log.info(
            "Balance adjusted",
            extra={
                "user_id": user_id,
                "delta": delta,
                "new_balance": new_balance,
                "reason": reason,
                "success": True,
            },
        )
        return new_balance

    async def admin_adjust_balance(
        self,
        actor_id: str,
        target_user_id: str,
        delta: Number,
        reason: str = "admin_adjustment",
    ) -> Number:
        """
        Adjust another user's balance. Admin-only.

        Raises:
            NotAuthorizedError: Actor is not an admin (checked before any write)
        """
        await self._profiles.require_admin(actor_id, "adjust_balance")
        return await self.adjust_balance(
            target_user_id, delta, reason=f"{reason}:{actor_id}"
        )

    async def claim_daily_bonus(self, user_id: str) -> bool:
        """
        Grant the daily bonus if the last claim is older than the window.

        Returns:
            True if the bonus was granted, False if still inside the window
            (no mutation in that case).
        """
        self.validate_identifier(user_id, "user_id")

        amount = self.get_config("ledger.daily_bonus.amount", 5)
        window = self.get_config("ledger.daily_bonus.window_seconds", 86_400)

        document = await self._store.get_document(USERS_COLLECTION, user_id) or {}
        last_claim = document.get("lastBonusClaimAt") or 0
        now = self._clock()

        if now - last_claim <= window:
            self.log.debug(
                "Daily bonus not yet available",
                extra={
                    "user_id": user_id,
                    "seconds_remaining": round(window - (now - last_claim), 1),
                },
            )
            return False

        self.log_operation("claim_daily_bonus", user_id=user_id, amount=amount)

        await self._store.set_document(
            USERS_COLLECTION,
            user_id,
            {"currency": Increment(amount), "lastBonusClaimAt": now},
            merge=True,
        )

        await self.emit_event(
            "ledger.daily_bonus_claimed",
            {"user_id": user_id, "amount": amount, "claimed_at": now},
        )

        self.log.info(
            "Daily bonus granted",
            extra={
                "user_id": user_id,
                "amount": amount,
                "previous_claim_at": last_claim,
                "success": True,
            },
        )
        return True
