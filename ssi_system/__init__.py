"""
Self-Sovereign Identity (SSI) Exchange
======================================

Mô phỏng trao đổi định danh tự chủ giữa Issuer, Holder và Verifier

Components:
- CryptoEnvelope: AES-256-GCM encryption of credential claims at rest
- RecordStore: connections, credentials, proof requests, presentations
- ConnectionManager: invite codes and pairing
- CredentialLifecycle: offer / accept / reject
- ProofLifecycle: request / decline / present
- SSIService: process-wide context wiring the above
"""

from .config import SSISettings
from .crypto_envelope import CryptoEnvelope, is_envelope
from .record_store import RecordStore
from .connection_manager import ConnectionManager
from .credential_lifecycle import CredentialLifecycle
from .proof_lifecycle import ProofLifecycle, DEFAULT_PROOF_REQUEST
from .ssi_service import SSIService
from .errors import (
    SSIError,
    ValidationError,
    NotFoundError,
    ConflictError,
    DecryptionError,
    StoreError,
)

__version__ = "1.0.0"
__all__ = [
    # Core
    "CryptoEnvelope",
    "is_envelope",
    "RecordStore",

    # Managers
    "ConnectionManager",
    "CredentialLifecycle",
    "ProofLifecycle",
    "DEFAULT_PROOF_REQUEST",

    # Service
    "SSIService",
    "SSISettings",

    # Errors
    "SSIError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DecryptionError",
    "StoreError",
]
