"""
Request bodies for the SSI API

Every field is optional at the schema level so that a missing value reaches
the managers and comes back as a 400 with the same message the clients
already display ("connectionId is required", ...). Scalar ids accept numbers
and booleans as well as strings, rendered the way they read in JSON (the
holder keypad posts invite codes as typed).
"""
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, BeforeValidator


def _as_text(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


Text = Annotated[Optional[str], BeforeValidator(_as_text)]


# =============================================================================
# ISSUER
# =============================================================================

class CreateInvitationRequest(BaseModel):
    label: Text = None
    alias: Text = None


class IssueCredentialRequest(BaseModel):
    connectionId: Text = None
    claims: Optional[Dict[str, Any]] = None


# =============================================================================
# HOLDER
# =============================================================================

class ReceiveInvitationRequest(BaseModel):
    inviteCode: Text = None


class CredentialDecisionRequest(BaseModel):
    """Body of accept-credential and reject-credential."""
    credentialId: Text = None


class DeclineProofRequest(BaseModel):
    proofRequestId: Text = None


class PresentProofRequest(BaseModel):
    proofRequestId: Text = None
    credentialId: Text = None


# =============================================================================
# VERIFIER
# =============================================================================

class SendProofRequest(BaseModel):
    connectionId: Text = None
    request: Optional[Dict[str, Any]] = None
