"""
Credential Lifecycle
====================

Cấp credential cho Holder qua connection đã ghép nối.

State machine:
    offered -> accepted | rejected   (both terminal)

Claims are sealed with the CryptoEnvelope before they reach the store; the
plaintext only exists again inside a Presentation.
"""

from typing import Optional, Dict, Any, List, Callable

from .crypto_envelope import CryptoEnvelope
from .db_models import CredentialDB, CredentialStatus
from .errors import ValidationError, NotFoundError, ConflictError
from .identifiers import require_record_id
from .logger import get_logger
from .record_store import RecordStore

logger = get_logger("credentials")

# Claim that names the credential type; the issuer console pins it to "NID"
TYPE_CLAIM = "department"
UNKNOWN_CREDENTIAL_TYPE = "UnknownCredential"


def credential_type_from_claims(claims: Dict[str, Any]) -> str:
    value = claims.get(TYPE_CLAIM)
    credential_type = str(value).strip() if value is not None else ""
    return credential_type or UNKNOWN_CREDENTIAL_TYPE


class CredentialLifecycle:
    """
    Issues credential offers and applies the holder's decision

    Args:
        store: Record store
        envelope: Crypto envelope used to seal claims
        connection_lookup: Optional callable returning the connection for a
            connectionId; when given, issuing to an unknown connection fails
    """

    def __init__(
        self,
        store: RecordStore,
        envelope: CryptoEnvelope,
        connection_lookup: Optional[Callable[[str], Optional[Dict[str, Any]]]] = None
    ):
        self.store = store
        self.envelope = envelope
        self.connection_lookup = connection_lookup

    # ==================== ISSUANCE ====================

    def issue(self, connection_id: Optional[str], claims: Optional[Dict[str, Any]]) -> str:
        """
        Offer a credential to the holder on a connection

        Args:
            connection_id: Pairing the offer is sent over
            claims: Plaintext claims, e.g. {"name": ..., "department": "NID"}

        Returns:
            credentialId of the stored offer
        """
        connection_id = (connection_id or "").strip()
        if not connection_id:
            raise ValidationError("connectionId is required")

        claims = claims or {}
        if not isinstance(claims, dict):
            raise ValidationError("claims must be an object")

        if self.connection_lookup and not self.connection_lookup(connection_id):
            raise NotFoundError("Connection not found")

        record = self.store.insert(CredentialDB(
            connection_id=connection_id,
            type=credential_type_from_claims(claims),
            status=CredentialStatus.OFFERED.value,
            claims=self.envelope.seal(claims),
        ))

        logger.info(f"Credential {record['_id']} offered on connection {connection_id}")
        return record["_id"]

    # ==================== HOLDER DECISION ====================

    def accept(self, credential_id: Optional[str]):
        """Holder accepts an offered credential"""
        self._decide(credential_id, CredentialStatus.ACCEPTED)

    def reject(self, credential_id: Optional[str]):
        """Holder rejects an offered credential"""
        self._decide(credential_id, CredentialStatus.REJECTED)

    def _decide(self, credential_id: Optional[str], target: CredentialStatus):
        credential_id = require_record_id(credential_id, "credentialId")

        previous = self.store.transition(
            CredentialDB, credential_id, CredentialStatus.OFFERED.value, target.value
        )

        if previous is None:
            raise NotFoundError("Credential not found")
        if previous == target.value:
            # Retried decision
            return
        if previous != CredentialStatus.OFFERED.value:
            raise ConflictError(f"Credential is already {previous}")

        logger.info(f"Credential {credential_id} {target.value}")

    # ==================== QUERIES ====================

    def get_credential(self, credential_id: str) -> Optional[Dict[str, Any]]:
        return self.store.find_one(CredentialDB, id=credential_id)

    def list_credentials(self, limit: int = 50) -> List[Dict[str, Any]]:
        """List credentials, newest first. Claims stay sealed."""
        return self.store.list_recent(CredentialDB, limit)
