"""
Packs Module
============

Pack opening and quick sell.

Exports:
- PackService: open_pack / quick_sell
- draw_template: the pure tiered draw
"""

from .draw_logic import draw_template, generate_instance_id, partition_tiers
from .service import PackService

__all__ = ["PackService", "draw_template", "generate_instance_id", "partition_tiers"]
