"""
Proof Lifecycle
===============

Verifier yêu cầu Holder trình bày thông tin từ credential.

State machine:
    requested -> declined | presented   (both terminal)

Presenting opens the credential's sealed claims and stores them in a
Presentation. There is no cryptographic proof: "verified" is always True
and the ask / predicates are not checked against the revealed claims.
"""

import copy
from typing import Optional, Dict, Any, List, Callable

from sqlalchemy import select

from .crypto_envelope import CryptoEnvelope
from .db_models import CredentialDB, ProofRequestDB, ProofRequestStatus, PresentationDB, PRESENTED
from .errors import ValidationError, NotFoundError, ConflictError
from .identifiers import require_record_id
from .logger import get_logger
from .record_store import RecordStore

logger = get_logger("proofs")

DEFAULT_PROOF_REQUEST = {
    "ask": ["name", "department"],
    "predicates": [{"field": "age", "op": ">=", "value": 20}],
}


class ProofLifecycle:
    """
    Sends proof requests and records the holder's answer

    Args:
        store: Record store
        envelope: Crypto envelope used to open credential claims
        connection_lookup: Optional callable returning the connection for a
            connectionId; when given, requests to unknown connections fail
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

    # ==================== REQUEST ====================

    def send_request(self, connection_id: Optional[str], request: Optional[Dict[str, Any]] = None) -> str:
        """
        Send a proof request to the holder on a connection

        Args:
            connection_id: Pairing the request is sent over
            request: {"ask": [attribute names], "predicates": [constraints]};
                DEFAULT_PROOF_REQUEST when omitted

        Returns:
            proofRequestId
        """
        connection_id = (connection_id or "").strip()
        if not connection_id:
            raise ValidationError("connectionId is required")

        if request is None:
            request = copy.deepcopy(DEFAULT_PROOF_REQUEST)
        elif not isinstance(request, dict):
            raise ValidationError("request must be an object")

        if self.connection_lookup and not self.connection_lookup(connection_id):
            raise NotFoundError("Connection not found")

        record = self.store.insert(ProofRequestDB(
            connection_id=connection_id,
            request=request,
            status=ProofRequestStatus.REQUESTED.value,
        ))

        logger.info(f"Proof request {record['_id']} sent on connection {connection_id}")
        return record["_id"]

    # ==================== HOLDER ANSWER ====================

    def decline(self, proof_request_id: Optional[str]):
        """Holder declines a pending proof request"""
        proof_request_id = require_record_id(proof_request_id, "proofRequestId")

        previous = self.store.transition(
            ProofRequestDB,
            proof_request_id,
            ProofRequestStatus.REQUESTED.value,
            ProofRequestStatus.DECLINED.value,
        )

        if previous is None:
            raise NotFoundError("Proof request not found")
        if previous == ProofRequestStatus.DECLINED.value:
            return
        if previous != ProofRequestStatus.REQUESTED.value:
            raise ConflictError(f"Proof request is already {previous}")

        logger.info(f"Proof request {proof_request_id} declined")

    def present(self, proof_request_id: Optional[str], credential_id: Optional[str]) -> Dict[str, bool]:
        """
        Answer a proof request with a credential

        Flow:
        1. Load the credential and open its claims
        2. Move the proof request requested -> presented
        3. Store a Presentation with the revealed claims

        Steps 2 and 3 share one transaction, so a proof request is
        presented at most once.

        Returns:
            {"verified": True}
        """
        proof_request_id = require_record_id(proof_request_id, "proofRequestId")
        credential_id = require_record_id(credential_id, "credentialId")

        credential = self.store.find_one(CredentialDB, id=credential_id)
        if not credential:
            raise NotFoundError("Credential not found")

        revealed = self.envelope.open(credential["claims"])

        with self.store.session_scope() as session:
            moved = self.store.update_in_session(
                session,
                ProofRequestDB,
                proof_request_id,
                {"status": ProofRequestStatus.PRESENTED.value},
                expected_status=ProofRequestStatus.REQUESTED.value,
            )
            if not moved:
                current = session.execute(
                    select(ProofRequestDB.status).where(ProofRequestDB.id == proof_request_id)
                ).scalar_one_or_none()
                if current is None:
                    raise NotFoundError("Proof request not found")
                raise ConflictError(f"Proof request is already {current}")

            session.add(PresentationDB(
                proof_request_id=proof_request_id,
                credential_id=credential_id,
                revealed=revealed,
                status=PRESENTED,
            ))

        logger.info(f"Proof request {proof_request_id} presented with credential {credential_id}")
        return {"verified": True}

    # ==================== QUERIES ====================

    def list_proof_requests(self, limit: int = 50) -> List[Dict[str, Any]]:
        return self.store.list_recent(ProofRequestDB, limit)

    def list_presentations(self, limit: int = 50) -> List[Dict[str, Any]]:
        return self.store.list_recent(PresentationDB, limit)
