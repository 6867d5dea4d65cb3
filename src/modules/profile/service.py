"""
ProfileService - user records, roles and entity links
======================================================

Handles:
- Creating and reading user records (`users/{user_id}`)
- Display names
- Role management (admin-only promotion/demotion)
- Linking an account to the entity that represents it in elections
- Balance subscriptions for the UI layer

The acting user is always passed in explicitly; nothing here reads an
ambient session. Currency is never written by this service; the ledger
owns every balance change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from src.domain.models.user import UserProfile, UserRole
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.core.store.base import DocumentStore, SnapshotCallback, Subscription

USERS_COLLECTION = "users"
MAX_DISPLAY_NAME_LENGTH = 32


class ProfileService(BaseService):
    """User profile access and role checks shared by every privileged operation."""

    def __init__(
        self,
        store: DocumentStore,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        self.validate_identifier(user_id, "user_id")
        document = await self._store.get_document(USERS_COLLECTION, user_id)
        if document is None:
            return None
        return UserProfile.from_document(user_id, document)

    async def require_profile(self, user_id: str) -> UserProfile:
        profile = await self.get_profile(user_id)
        if profile is None:
            raise NotFoundError("User", user_id)
        return profile

    async def is_admin(self, user_id: str) -> bool:
        profile = await self.get_profile(user_id)
        return profile is not None and profile.is_admin

    async def require_admin(self, user_id: str, action: str) -> UserProfile:
        """
        Load the actor and reject anyone without the admin role.

        Raises:
            NotAuthorizedError: Unknown user or non-admin role
        """
        profile = await self.get_profile(user_id)
        if profile is None or not profile.is_admin:
            self.log.warning(
                "Privileged operation rejected",
                extra={"user_id": user_id, "action": action},
            )
            raise NotAuthorizedError(user_id, action, required_role=UserRole.ADMIN.value)
        return profile

    async def find_by_linked_entity(self, entity_id: str) -> Optional[UserProfile]:
        for document in await self._store.list_documents(USERS_COLLECTION):
            if document.get("linkedEntityId") == entity_id:
                return UserProfile.from_document(document["id"], document)
        return None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def ensure_profile(self, user_id: str, display_name: str = "") -> UserProfile:
        """
        Create the user record on first sign-in; existing records are untouched.

        New records start with role "user" and no currency field; the ledger
        creates the balance on the first adjustment.
        """
        self.validate_identifier(user_id, "user_id")

        existing = await self.get_profile(user_id)
        if existing is not None:
            return existing

        name = self._clean_display_name(display_name) if display_name else user_id
        self.log_operation("ensure_profile", user_id=user_id)

        await self._store.set_document(
            USERS_COLLECTION,
            user_id,
            {"displayName": name, "role": UserRole.USER.value, "lastBonusClaimAt": 0},
            merge=True,
        )
        self.log.info("Profile created", extra={"user_id": user_id, "success": True})
        return await self.require_profile(user_id)

    async def set_display_name(self, user_id: str, display_name: str) -> UserProfile:
        name = self._clean_display_name(display_name)
        await self.require_profile(user_id)

        self.log_operation("set_display_name", user_id=user_id)
        await self._store.update_document(USERS_COLLECTION, user_id, {"displayName": name})
        return await self.require_profile(user_id)

    async def set_role(self, actor_id: str, target_user_id: str, role: str) -> UserProfile:
        """
        Promote or demote a user. Admin-only.

        Raises:
            NotAuthorizedError: Actor is not an admin
            ValidationError: Unknown role
            NotFoundError: Target user does not exist
        """
        await self.require_admin(actor_id, "set_role")
        try:
            new_role = UserRole(role)
        except ValueError as exc:
            raise ValidationError("role", f"unknown role {role!r}") from exc

        target = await self.require_profile(target_user_id)
        self.log_operation(
            "set_role",
            user_id=actor_id,
            target_user_id=target_user_id,
            old_role=target.role.value,
            new_role=new_role.value,
        )
        await self._store.update_document(
            USERS_COLLECTION, target_user_id, {"role": new_role.value}
        )
        return await self.require_profile(target_user_id)

    async def link_entity(self, user_id: str, entity_id: Optional[str]) -> UserProfile:
        """
        Tie the account to one catalog entry or owned instance (or unlink with None).

        Whether the entity exists is the caller's concern; ballots check
        eligibility at cast time.
        """
        await self.require_profile(user_id)
        if entity_id is not None:
            self.validate_identifier(entity_id, "entity_id")

        self.log_operation("link_entity", user_id=user_id, entity_id=entity_id)
        await self._store.update_document(
            USERS_COLLECTION, user_id, {"linkedEntityId": entity_id}
        )
        return await self.require_profile(user_id)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe_balance(
        self, user_id: str, callback: SnapshotCallback
    ) -> Subscription:
        """Push the user's balance (0 for a missing record) after every write to it."""
        self.validate_identifier(user_id, "user_id")

        def _on_snapshot(document):
            return callback((document or {}).get("currency", 0))

        return await self._store.subscribe(USERS_COLLECTION, _on_snapshot, doc_id=user_id)

    @staticmethod
    def _clean_display_name(display_name: str) -> str:
        name = (display_name or "").strip()
        if not name:
            raise ValidationError("display_name", "display name cannot be empty")
        if len(name) > MAX_DISPLAY_NAME_LENGTH:
            raise ValidationError(
                "display_name", f"display name exceeds {MAX_DISPLAY_NAME_LENGTH} characters"
            )
        return name
