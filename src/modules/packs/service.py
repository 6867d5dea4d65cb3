"""
PackService - pack opening and quick sell
=========================================

Handles:
- Opening a pack: funds gate, debit, tiered draw, new owned instance
- Quick sell: remove an owned instance and refund part of a pack price

Open flow
---------
1. Read the balance fresh; below the pack cost the draw is declined
   (`None`, nothing written).
2. Debit the cost through the ledger.
3. Load the catalog and draw a template (see `draw_logic`).
4. Snapshot the template into a new instance and store it in the inventory.

A debit is never left without an item: an empty catalog refunds the cost
and returns `None`; any failure after the debit (storage outage, a catalog
entry that cannot be snapshotted) triggers a refund attempt before the
error is re-raised. Quick sell puts the card back if the credit fails.

Config keys: `packs.cost`, `packs.high_tier.min_rating`,
`packs.high_tier.chance`, `packs.quick_sell_refund`.
"""

from __future__ import annotations

import random
import time
from typing import TYPE_CHECKING, Callable, Optional, Union

from src.core.logging.logger import LogContext
from src.domain.models.inventory import OwnedInstance
from src.modules.packs.draw_logic import draw_template, generate_instance_id
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.modules.catalog.service import CatalogService
    from src.modules.inventory.service import InventoryService
    from src.modules.ledger.service import LedgerService

Number = Union[int, float]


class PackService(BaseService):
    def __init__(
        self,
        ledger: LedgerService,
        catalog: CatalogService,
        inventory: InventoryService,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._ledger = ledger
        self._catalog = catalog
        self._inventory = inventory
        self._rng = rng or random.Random()
        self._clock = clock

    async def open_pack(self, user_id: str) -> Optional[OwnedInstance]:
        """
        Open one pack for `user_id`.

        Returns:
            The new owned instance, or None when the draw was declined
            (insufficient balance) or the catalog was empty (cost refunded).

        Raises:
            StorageUnavailableError: Store failure; any debit already taken
                has been refunded when the store allowed it. Other errors
                after the debit are refunded the same way.
        """
        self.validate_identifier(user_id, "user_id")

        async with LogContext(user_id=user_id, operation="open_pack"):
            return await self._open(user_id)

    async def _open(self, user_id: str) -> Optional[OwnedInstance]:
        cost = self.get_config("packs.cost", 1)
        balance = await self._ledger.get_balance(user_id)
        if balance < cost:
            self.log.info(
                "Pack declined: insufficient balance",
                extra={"user_id": user_id, "balance": balance, "cost": cost},
            )
            return None

        self.log_operation("open_pack", user_id=user_id, balance=balance, cost=cost)
        await self._ledger.adjust_balance(user_id, -cost, reason="pack_open")

        try:
            instance = await self._draw_into_inventory(user_id)
        except Exception as exc:
            self.log_error("open_pack", exc, user_id=user_id, cost=cost)
            await self._refund_after_failure(user_id, cost)
            raise

        if instance is None:
            await self._ledger.adjust_balance(user_id, cost, reason="pack_refund_empty_catalog")
            self.log.warning(
                "Pack refunded: catalog is empty",
                extra={"user_id": user_id, "cost": cost},
            )
            return None

        await self.emit_event(
            "pack.opened",
            {
                "user_id": user_id,
                "instance_id": instance.id,
                "template_id": instance.template_id,
                "rating": instance.rating,
                "cost": cost,
            },
        )

        self.log.info(
            "Pack opened",
            extra={
                "user_id": user_id,
                "instance_id": instance.id,
                "template_id": instance.template_id,
                "rating": instance.rating,
                "success": True,
            },
        )
        return instance

    async def _draw_into_inventory(self, user_id: str) -> Optional[OwnedInstance]:
        catalog = await self._catalog.list_entries()
        template = draw_template(
            catalog,
            self._rng,
            min_rating=self.get_config("packs.high_tier.min_rating", 88),
            high_tier_chance=self.get_config("packs.high_tier.chance", 0.10),
        )
        if template is None:
            return None

        now = self._clock()
        instance = OwnedInstance.from_template(
            template,
            instance_id=generate_instance_id(now, template.id),
            owner_id=user_id,
            acquired_at=now,
        )
        return await self._inventory.add(user_id, instance)

    async def _refund_after_failure(self, user_id: str, cost: Number) -> None:
        # The draw error is re-raised by the caller whatever happens here
        try:
            await self._ledger.adjust_balance(user_id, cost, reason="pack_refund_failed_draw")
        except Exception as refund_error:
            self.log.critical(
                "Pack refund failed; balance is short by the pack cost",
                extra={
                    "user_id": user_id,
                    "cost": cost,
                    "refund_error": str(refund_error),
                },
            )
            return
        self.log.warning(
            "Pack refunded after failed draw", extra={"user_id": user_id, "cost": cost}
        )

    async def quick_sell(self, user_id: str, instance_id: str) -> Number:
        """
        Remove an owned instance and credit the quick-sell refund.

        Returns:
            The balance after the credit.

        Raises:
            NotFoundError: The instance is not (or no longer) in the inventory;
                nothing is credited
            StorageUnavailableError: The credit failed; the card is put back
        """
        self.validate_identifier(user_id, "user_id")
        self.validate_identifier(instance_id, "instance_id")

        refund = self.get_config("packs.quick_sell_refund", 0.5)
        self.log_operation("quick_sell", user_id=user_id, instance_id=instance_id, refund=refund)

        instance = await self._inventory.get_by_id(user_id, instance_id)
        if instance is None or not await self._inventory.remove(user_id, instance_id):
            raise NotFoundError("Inventory card", instance_id)

        try:
            new_balance = await self._ledger.adjust_balance(user_id, refund, reason="quick_sell")
        except Exception as exc:
            self.log_error("quick_sell", exc, user_id=user_id, instance_id=instance_id)
            await self._restore_after_failed_sale(user_id, instance)
            raise

        await self.emit_event(
            "pack.quick_sold",
            {
                "user_id": user_id,
                "instance_id": instance_id,
                "refund": refund,
                "new_balance": new_balance,
            },
        )
        return new_balance

    async def _restore_after_failed_sale(self, user_id: str, instance: OwnedInstance) -> None:
        try:
            await self._inventory.add(user_id, instance)
        except Exception as restore_error:
            self.log.critical(
                "Quick sell failed and the card could not be restored",
                extra={
                    "user_id": user_id,
                    "instance_id": instance.id,
                    "template_id": instance.template_id,
                    "restore_error": str(restore_error),
                },
            )
            return
        self.log.warning(
            "Quick sell credit failed; card restored",
            extra={"user_id": user_id, "instance_id": instance.id},
        )
