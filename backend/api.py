"""
SSI Feature Phone Simulation API
================================

Stateless JSON API polled by the issuer console, the verifier console and
the feature-phone holder UI. Clients discover every state change by
re-reading the list endpoints; there is no push channel.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from ssi_system import SSIService, SSISettings, SSIError
from ssi_system.config import settings as default_settings
from ssi_system.logger import configure_logging, get_logger

from .schemas import (
    CreateInvitationRequest,
    IssueCredentialRequest,
    ReceiveInvitationRequest,
    CredentialDecisionRequest,
    DeclineProofRequest,
    PresentProofRequest,
    SendProofRequest,
)

logger = get_logger("api")

router = APIRouter()


def get_service(request: Request) -> SSIService:
    return request.app.state.ssi


def _limit(request: Request) -> int:
    return request.app.state.settings.LIST_LIMIT


@router.get("/", response_class=PlainTextResponse)
def root():
    return "SSI Feature Phone Simulation API running"


@router.get("/api/health")
def health(request: Request):
    return get_service(request).health()


@router.get("/api/stats")
def stats(request: Request):
    """Record counts per collection and status"""
    return get_service(request).get_statistics()


# ============================================================
# ISSUER ENDPOINTS
# ============================================================

@router.post("/api/issuer/create-invitation")
def create_invitation(request: Request, body: Optional[CreateInvitationRequest] = None):
    """
    Create an invitation for a holder

    Returns:
        {"inviteCode": "12345"}
    """
    body = body or CreateInvitationRequest()
    invite_code = get_service(request).connections.create_invitation(body.label, body.alias)
    return {"inviteCode": invite_code}


@router.post("/api/issuer/issue-credential")
def issue_credential(request: Request, body: Optional[IssueCredentialRequest] = None):
    """Offer a credential with encrypted claims over a connection"""
    body = body or IssueCredentialRequest()
    credential_id = get_service(request).credentials.issue(body.connectionId, body.claims)
    return {"ok": True, "credentialId": credential_id}


# ============================================================
# HOLDER ENDPOINTS
# ============================================================

@router.post("/api/holder/receive-invitation")
def receive_invitation(request: Request, body: Optional[ReceiveInvitationRequest] = None):
    """Redeem an invite code typed on the keypad"""
    body = body or ReceiveInvitationRequest()
    connection_id = get_service(request).connections.receive_invitation(body.inviteCode)
    return {"ok": True, "connectionId": connection_id}


@router.post("/api/holder/accept-credential")
def accept_credential(request: Request, body: Optional[CredentialDecisionRequest] = None):
    body = body or CredentialDecisionRequest()
    get_service(request).credentials.accept(body.credentialId)
    return {"ok": True}


@router.post("/api/holder/reject-credential")
def reject_credential(request: Request, body: Optional[CredentialDecisionRequest] = None):
    body = body or CredentialDecisionRequest()
    get_service(request).credentials.reject(body.credentialId)
    return {"ok": True}


@router.post("/api/holder/decline-proof-request")
def decline_proof_request(request: Request, body: Optional[DeclineProofRequest] = None):
    body = body or DeclineProofRequest()
    get_service(request).proofs.decline(body.proofRequestId)
    return {"ok": True}


@router.post("/api/holder/present-proof")
def present_proof(request: Request, body: Optional[PresentProofRequest] = None):
    """
    Present a credential for a proof request

    The credential's claims are decrypted and stored as the revealed part
    of a presentation the verifier can poll for.
    """
    body = body or PresentProofRequest()
    result = get_service(request).proofs.present(body.proofRequestId, body.credentialId)
    return {"ok": True, **result}


# ============================================================
# VERIFIER ENDPOINTS
# ============================================================

@router.post("/api/verifier/send-proof-request")
def send_proof_request(request: Request, body: Optional[SendProofRequest] = None):
    body = body or SendProofRequest()
    proof_request_id = get_service(request).proofs.send_request(body.connectionId, body.request)
    return {"ok": True, "proofRequestId": proof_request_id}


# ============================================================
# POLLING READS
# ============================================================

@router.get("/api/connections")
def list_connections(request: Request):
    return {"items": get_service(request).connections.list_connections(_limit(request))}


@router.get("/api/credentials")
def list_credentials(request: Request):
    return {"items": get_service(request).credentials.list_credentials(_limit(request))}


@router.get("/api/proof-requests")
def list_proof_requests(request: Request):
    return {"items": get_service(request).proofs.list_proof_requests(_limit(request))}


@router.get("/api/presentations")
def list_presentations(request: Request):
    return {"items": get_service(request).proofs.list_presentations(_limit(request))}


# ============================================================
# ERROR HANDLERS
# ============================================================

async def ssi_error_handler(request: Request, exc: SSIError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path}: {exc.message}")
    else:
        logger.warning(f"{request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request body: {field} {errors[0].get('msg', '')}".strip()
    logger.warning(message)
    return JSONResponse(status_code=400, content={"error": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


# ============================================================
# APP
# ============================================================

def create_app(settings: Optional[SSISettings] = None) -> FastAPI:
    """
    Build the API application

    Args:
        settings: Configuration; module-level settings when omitted
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        logger.info("Starting SSI Feature Phone Simulation API...")
        app.state.ssi = SSIService(settings)
        yield
        logger.info("Shutting down...")
        app.state.ssi.close()

    app = FastAPI(title="SSI Feature Phone Simulation API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > settings.MAX_BODY_BYTES:
            logger.warning(f"{request.url.path}: body of {length} bytes rejected")
            return JSONResponse(status_code=413, content={"error": "Request body too large"})
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SSIError, ssi_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
