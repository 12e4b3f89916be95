"""
SSI Integration Service
=======================

Process-wide context built once at startup. Owns the record store and the
crypto envelope and hands them explicitly to:
- ConnectionManager
- CredentialLifecycle
- ProofLifecycle
"""

from typing import Optional, Dict, Any

from .config import SSISettings
from .connection_manager import ConnectionManager
from .credential_lifecycle import CredentialLifecycle
from .crypto_envelope import CryptoEnvelope
from .db_models import ConnectionDB, CredentialDB, ProofRequestDB, PresentationDB, utcnow
from .logger import get_logger
from .proof_lifecycle import ProofLifecycle
from .record_store import RecordStore

logger = get_logger("service")


class SSIService:
    """
    Main service class for the issuer / holder / verifier exchange

    Provides a unified interface for:
    - Invitations and connections
    - Credential offers
    - Proof requests and presentations
    """

    def __init__(self, settings: Optional[SSISettings] = None):
        """
        Initialize SSI Service

        Args:
            settings: Configuration; read from the environment when omitted
        """
        self.settings = settings or SSISettings()

        self.store = RecordStore(self.settings.DATABASE_URL)
        self.store.init_db()
        self.envelope = CryptoEnvelope(self.settings.AES_SECRET)

        self.connections = ConnectionManager(
            self.store,
            code_length=self.settings.INVITE_CODE_LENGTH,
            max_code_attempts=self.settings.INVITE_CODE_MAX_ATTEMPTS,
            single_use_invites=self.settings.SINGLE_USE_INVITES,
        )

        connection_lookup = None
        if self.settings.ENFORCE_CONNECTION_REFS:
            connection_lookup = self.connections.get_by_connection_id

        self.credentials = CredentialLifecycle(self.store, self.envelope, connection_lookup)
        self.proofs = ProofLifecycle(self.store, self.envelope, connection_lookup)

        logger.info("SSI service initialized")

    def close(self):
        self.store.dispose()

    # ==================== STATUS ====================

    def health(self) -> Dict[str, Any]:
        return {"ok": True, "time": utcnow().isoformat(timespec="milliseconds") + "Z"}

    def get_statistics(self) -> Dict[str, Any]:
        """Record counts per collection and per status"""
        stats = {}
        for name, model in (
            ("connections", ConnectionDB),
            ("credentials", CredentialDB),
            ("proofRequests", ProofRequestDB),
            ("presentations", PresentationDB),
        ):
            by_status = self.store.count_by_status(model)
            stats[name] = {"total": sum(by_status.values()), "byStatus": by_status}
        return stats
