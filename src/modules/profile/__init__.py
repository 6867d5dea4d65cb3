"""
Profile Module
==============

User records, roles and entity links.

Exports:
- ProfileService: profile reads/writes and admin checks
"""

from .service import USERS_COLLECTION, ProfileService

__all__ = ["ProfileService", "USERS_COLLECTION"]
