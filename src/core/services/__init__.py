"""
Core Services
=============

Exports:
- ServiceContainer: store, event bus and domain service wiring
"""

from .container import ServiceContainer

__all__ = ["ServiceContainer"]
