"""
SSI Record Store - SQLAlchemy ORM Models

Four independent collections: connections, credentials, proof requests and
proof presentations. Records reference each other by id only; there are no
foreign keys between tables.
"""
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import declarative_base

from .identifiers import new_record_id

Base = declarative_base()


# =============================================================================
# STATUS ENUMS
# =============================================================================

class ConnectionStatus(str, Enum):
    INVITATION_CREATED = "invitation-created"
    CONNECTED = "connected"


class CredentialStatus(str, Enum):
    """offered -> accepted | rejected"""
    OFFERED = "offered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ProofRequestStatus(str, Enum):
    """requested -> declined | presented"""
    REQUESTED = "requested"
    DECLINED = "declined"
    PRESENTED = "presented"


PRESENTED = "presented"


def utcnow() -> datetime:
    """Naive UTC timestamp; renderings append "Z"."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value: datetime):
    return value.isoformat() + "Z" if value else None


# =============================================================================
# MODELS
# =============================================================================

class ConnectionDB(Base):
    """Invitation and, once redeemed, the pairing it established."""
    __tablename__ = "connections"

    id = Column(String(24), primary_key=True, default=new_record_id)
    invitation_id = Column(String(64), nullable=False)
    invite_code = Column(String(16), nullable=False, unique=True, index=True)
    label = Column(String(255), nullable=False, default="holder")
    alias = Column(String(255), nullable=False, default="holder")
    status = Column(String(32), nullable=False, default=ConnectionStatus.INVITATION_CREATED.value)
    connection_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        doc = {
            "_id": self.id,
            "invitationId": self.invitation_id,
            "inviteCode": self.invite_code,
            "label": self.label,
            "alias": self.alias,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if self.connection_id:
            doc["connectionId"] = self.connection_id
        return doc


class CredentialDB(Base):
    """Credential offer. Claims are stored only as a sealed envelope."""
    __tablename__ = "credentials"

    id = Column(String(24), primary_key=True, default=new_record_id)
    connection_id = Column(String(64), nullable=False, index=True)
    type = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default=CredentialStatus.OFFERED.value)
    claims = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "_id": self.id,
            "connectionId": self.connection_id,
            "type": self.type,
            "status": self.status,
            "claims": self.claims,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class ProofRequestDB(Base):
    """Verifier's ask: attribute names plus predicate constraints."""
    __tablename__ = "proof_requests"

    id = Column(String(24), primary_key=True, default=new_record_id)
    connection_id = Column(String(64), nullable=False, index=True)
    request = Column(JSON, nullable=False)
    status = Column(String(32), nullable=False, default=ProofRequestStatus.REQUESTED.value)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "_id": self.id,
            "connectionId": self.connection_id,
            "request": self.request,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class PresentationDB(Base):
    """Holder's answer to a proof request. Immutable once written."""
    __tablename__ = "proof_presentations"

    id = Column(String(24), primary_key=True, default=new_record_id)
    proof_request_id = Column(String(24), nullable=False, index=True)
    credential_id = Column(String(24), nullable=False)
    revealed = Column(JSON, nullable=False)
    status = Column(String(32), nullable=False, default=PRESENTED)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            "_id": self.id,
            "proofRequestId": self.proof_request_id,
            "credentialId": self.credential_id,
            "revealed": self.revealed,
            "status": self.status,
            "createdAt": _iso(self.created_at),
        }
