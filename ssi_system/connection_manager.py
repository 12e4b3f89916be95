"""
Connection Manager - Ghép nối Issuer/Verifier với Holder bằng mã mời
====================================================================

Pairing protocol:
1. Issuer (or verifier) creates an invitation -> short numeric invite code
2. Holder types the code on the keypad -> connection becomes "connected"
   and gets a connectionId that never changes afterwards
"""

from typing import Optional, Dict, Any, List

from .db_models import ConnectionDB, ConnectionStatus
from .errors import ValidationError, NotFoundError, ConflictError, StoreError
from .identifiers import new_opaque_id, generate_invite_code
from .logger import get_logger
from .record_store import RecordStore

logger = get_logger("connections")


class ConnectionManager:
    """
    Issues invite codes and binds them to connections

    Features:
    - Unique invite codes (check-and-retry, backed by a unique constraint)
    - Idempotent redemption, or single-use codes when configured
    - Newest-first connection listing
    """

    def __init__(
        self,
        store: RecordStore,
        code_length: int = 5,
        max_code_attempts: int = 10,
        single_use_invites: bool = False
    ):
        self.store = store
        self.code_length = code_length
        self.max_code_attempts = max_code_attempts
        self.single_use_invites = single_use_invites

    # ==================== INVITATIONS ====================

    def create_invitation(self, label: Optional[str] = None, alias: Optional[str] = None) -> str:
        """
        Create an invitation in state "invitation-created"

        Args:
            label: Display label for the holder
            alias: Alias for the holder

        Returns:
            The invite code
        """
        for _ in range(self.max_code_attempts):
            invite_code = generate_invite_code(self.code_length)
            if self.store.exists(ConnectionDB, invite_code=invite_code):
                continue
            try:
                self.store.insert(ConnectionDB(
                    invitation_id=new_opaque_id(),
                    invite_code=invite_code,
                    label=label or "holder",
                    alias=alias or "holder",
                    status=ConnectionStatus.INVITATION_CREATED.value,
                ))
            except ConflictError:
                # Taken by a concurrent invitation after the check
                continue

            logger.info(f"Invitation created (code length {len(invite_code)})")
            return invite_code

        raise StoreError("Could not allocate a unique invite code")

    def receive_invitation(self, invite_code: Optional[str]) -> str:
        """
        Redeem an invite code

        Args:
            invite_code: Code typed by the holder

        Returns:
            connectionId of the pairing (same value on repeated redemption)
        """
        invite_code = (invite_code or "").strip()
        if not invite_code:
            raise ValidationError("inviteCode is required")

        existing = self.store.find_one(ConnectionDB, invite_code=invite_code)
        if not existing:
            raise NotFoundError("Invalid invite code")

        connection_id = existing.get("connectionId")
        if connection_id:
            if self.single_use_invites:
                raise ConflictError("Invite code already redeemed")
            return connection_id

        connection_id = new_opaque_id()
        changed = self.store.update_by_id(
            ConnectionDB,
            existing["_id"],
            {"connection_id": connection_id, "status": ConnectionStatus.CONNECTED.value},
            expected_status=ConnectionStatus.INVITATION_CREATED.value,
        )

        if not changed:
            # Redeemed concurrently; the stored connectionId wins
            current = self.store.find_one(ConnectionDB, id=existing["_id"])
            if self.single_use_invites:
                raise ConflictError("Invite code already redeemed")
            return current["connectionId"]

        logger.info(f"Connection {connection_id} established")
        return connection_id

    # ==================== QUERIES ====================

    def get_by_connection_id(self, connection_id: str) -> Optional[Dict[str, Any]]:
        return self.store.find_one(ConnectionDB, connection_id=connection_id)

    def list_connections(self, limit: int = 50) -> List[Dict[str, Any]]:
        """List connections, newest first"""
        return self.store.list_recent(ConnectionDB, limit)
