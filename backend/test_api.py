"""
API Tests
=========

End-to-end scenarios over the HTTP contract, the way the issuer console,
verifier console and holder UI drive it.
"""

import base64
import json

from fastapi.testclient import TestClient

from ssi_system import SSISettings
from ssi_system.db_models import Base, CredentialDB
from ssi_system.identifiers import new_record_id

from backend.api import create_app

ARI_CLAIMS = {"name": "Ari", "numeric": "12345", "department": "NID"}


class TestAPI:
    """Test HTTP endpoints"""

    def setup_method(self):
        settings = SSISettings(DATABASE_URL="sqlite://", AES_SECRET="api-test-secret")
        self.app = create_app(settings)
        self._client = TestClient(self.app)
        self.client = self._client.__enter__()

    def teardown_method(self):
        self._client.__exit__(None, None, None)

    # ==================== HELPERS ====================

    def connect(self) -> str:
        res = self.client.post("/api/issuer/create-invitation", json={"label": "holder", "alias": "holder"})
        invite_code = res.json()["inviteCode"]
        res = self.client.post("/api/holder/receive-invitation", json={"inviteCode": invite_code})
        return res.json()["connectionId"]

    def issue(self, connection_id: str) -> str:
        res = self.client.post(
            "/api/issuer/issue-credential",
            json={"connectionId": connection_id, "claims": ARI_CLAIMS},
        )
        return res.json()["credentialId"]

    def items(self, path: str):
        res = self.client.get(path)
        assert res.status_code == 200
        return res.json()["items"]

    # ==================== STATUS ====================

    def test_root_and_health(self):
        assert "running" in self.client.get("/").text

        res = self.client.get("/api/health")
        assert res.status_code == 200
        assert res.json()["ok"] is True
        assert "time" in res.json()

    # ==================== CONNECTIONS ====================

    def test_invitation_flow(self):
        res = self.client.post("/api/issuer/create-invitation", json={"label": "Ari", "alias": "ari"})
        assert res.status_code == 200
        invite_code = res.json()["inviteCode"]
        assert len(invite_code) == 5 and invite_code.isdigit()

        first = self.client.post("/api/holder/receive-invitation", json={"inviteCode": invite_code})
        second = self.client.post("/api/holder/receive-invitation", json={"inviteCode": invite_code})

        assert first.status_code == 200
        assert first.json()["ok"] is True
        assert first.json()["connectionId"] == second.json()["connectionId"]

        connection = self.items("/api/connections")[0]
        assert connection["status"] == "connected"
        assert connection["label"] == "Ari"
        assert connection["connectionId"] == first.json()["connectionId"]
        print(f"✅ Connected via invite code {invite_code}")

    def test_create_invitation_without_body(self):
        res = self.client.post("/api/issuer/create-invitation")

        assert res.status_code == 200
        assert self.items("/api/connections")[0]["label"] == "holder"

    def test_numeric_invite_code(self):
        invite_code = self.client.post("/api/issuer/create-invitation", json={}).json()["inviteCode"]
        res = self.client.post("/api/holder/receive-invitation", json={"inviteCode": int(invite_code)})

        assert res.status_code == 200

    def test_unknown_invite_code(self):
        res = self.client.post("/api/holder/receive-invitation", json={"inviteCode": "99999"})

        assert res.status_code == 404
        assert res.json() == {"error": "Invalid invite code"}

    def test_missing_invite_code(self):
        res = self.client.post("/api/holder/receive-invitation", json={})

        assert res.status_code == 400
        assert res.json() == {"error": "inviteCode is required"}

    def test_body_not_an_object(self):
        res = self.client.post("/api/holder/receive-invitation", json=["99999"])

        assert res.status_code == 400
        assert "error" in res.json()

    # ==================== CREDENTIALS ====================

    def test_issue_and_accept(self):
        connection_id = self.connect()
        credential_id = self.issue(connection_id)

        credential = self.items("/api/credentials")[0]
        assert credential["_id"] == credential_id
        assert credential["status"] == "offered"
        assert credential["type"] == "NID"
        assert "Ari" not in json.dumps(credential)

        res = self.client.post("/api/holder/accept-credential", json={"credentialId": credential_id})
        assert res.status_code == 200
        assert res.json() == {"ok": True}

        assert self.items("/api/credentials")[0]["status"] == "accepted"
        print(f"✅ Credential {credential_id} accepted")

    def test_reject_then_accept(self):
        credential_id = self.issue(self.connect())

        res = self.client.post("/api/holder/reject-credential", json={"credentialId": credential_id})
        assert res.status_code == 200

        res = self.client.post("/api/holder/accept-credential", json={"credentialId": credential_id})
        assert res.status_code == 409
        assert self.items("/api/credentials")[0]["status"] == "rejected"

    def test_issue_missing_connection_id(self):
        res = self.client.post("/api/issuer/issue-credential", json={"claims": ARI_CLAIMS})

        assert res.status_code == 400
        assert res.json() == {"error": "connectionId is required"}

    def test_credential_id_errors(self):
        res = self.client.post("/api/holder/accept-credential", json={})
        assert res.status_code == 400
        assert res.json() == {"error": "credentialId is required"}

        res = self.client.post("/api/holder/reject-credential", json={"credentialId": "nope"})
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid credentialId"}

        res = self.client.post("/api/holder/accept-credential", json={"credentialId": new_record_id()})
        assert res.status_code == 404
        assert res.json() == {"error": "Credential not found"}

    # ==================== PROOFS ====================

    def test_present_proof(self):
        connection_id = self.connect()
        credential_id = self.issue(connection_id)
        self.client.post("/api/holder/accept-credential", json={"credentialId": credential_id})

        res = self.client.post("/api/verifier/send-proof-request", json={"connectionId": connection_id})
        assert res.status_code == 200
        proof_request_id = res.json()["proofRequestId"]

        proof_request = self.items("/api/proof-requests")[0]
        assert proof_request["status"] == "requested"
        assert proof_request["request"]["ask"] == ["name", "department"]

        res = self.client.post(
            "/api/holder/present-proof",
            json={"proofRequestId": proof_request_id, "credentialId": credential_id},
        )
        assert res.status_code == 200
        assert res.json() == {"ok": True, "verified": True}

        presentation = self.items("/api/presentations")[0]
        assert presentation["proofRequestId"] == proof_request_id
        assert presentation["revealed"]["name"] == "Ari"
        assert self.items("/api/proof-requests")[0]["status"] == "presented"
        print("✅ Presentation received by verifier")

    def test_present_twice(self):
        connection_id = self.connect()
        credential_id = self.issue(connection_id)
        proof_request_id = self.client.post(
            "/api/verifier/send-proof-request", json={"connectionId": connection_id}
        ).json()["proofRequestId"]
        body = {"proofRequestId": proof_request_id, "credentialId": credential_id}

        assert self.client.post("/api/holder/present-proof", json=body).status_code == 200
        assert self.client.post("/api/holder/present-proof", json=body).status_code == 409
        assert len(self.items("/api/presentations")) == 1

    def test_decline_proof_request(self):
        connection_id = self.connect()
        credential_id = self.issue(connection_id)
        proof_request_id = self.client.post(
            "/api/verifier/send-proof-request",
            json={"connectionId": connection_id, "request": {"ask": ["name"], "predicates": []}},
        ).json()["proofRequestId"]

        res = self.client.post("/api/holder/decline-proof-request", json={"proofRequestId": proof_request_id})
        assert res.status_code == 200
        assert self.items("/api/proof-requests")[0]["status"] == "declined"

        res = self.client.post(
            "/api/holder/present-proof",
            json={"proofRequestId": proof_request_id, "credentialId": credential_id},
        )
        assert res.status_code == 409
        assert not [p for p in self.items("/api/presentations") if p["proofRequestId"] == proof_request_id]
        print("✅ Declined proof request has no presentation")

    def test_send_proof_request_missing_connection_id(self):
        res = self.client.post("/api/verifier/send-proof-request", json={})

        assert res.status_code == 400
        assert res.json() == {"error": "connectionId is required"}

    def test_present_proof_errors(self):
        res = self.client.post("/api/holder/present-proof", json={"credentialId": new_record_id()})
        assert res.status_code == 400
        assert res.json() == {"error": "proofRequestId is required"}

        res = self.client.post("/api/holder/present-proof", json={"proofRequestId": new_record_id()})
        assert res.status_code == 400
        assert res.json() == {"error": "credentialId is required"}

        res = self.client.post(
            "/api/holder/present-proof",
            json={"proofRequestId": new_record_id(), "credentialId": "bad"},
        )
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid credentialId"}

        res = self.client.post(
            "/api/holder/present-proof",
            json={"proofRequestId": new_record_id(), "credentialId": new_record_id()},
        )
        assert res.status_code == 404
        assert res.json() == {"error": "Credential not found"}

    def test_decline_errors(self):
        res = self.client.post("/api/holder/decline-proof-request", json={})
        assert res.status_code == 400

        res = self.client.post("/api/holder/decline-proof-request", json={"proofRequestId": "x"})
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid proofRequestId"}

        res = self.client.post("/api/holder/decline-proof-request", json={"proofRequestId": new_record_id()})
        assert res.status_code == 404

    # ==================== STATS ====================

    def test_stats(self):
        self.issue(self.connect())

        stats = self.client.get("/api/stats").json()
        assert stats["connections"]["total"] == 1
        assert stats["credentials"]["byStatus"] == {"offered": 1}

    # ==================== SERVER ERRORS ====================

    def test_present_tampered_credential(self):
        connection_id = self.connect()
        credential_id = self.issue(connection_id)
        proof_request_id = self.client.post(
            "/api/verifier/send-proof-request", json={"connectionId": connection_id}
        ).json()["proofRequestId"]

        store = self.app.state.ssi.store
        claims = store.find_one(CredentialDB, id=credential_id)["claims"]
        tag = bytearray(base64.b64decode(claims["tag"]))
        tag[0] ^= 0x01
        claims["tag"] = base64.b64encode(bytes(tag)).decode("utf-8")
        store.update_by_id(CredentialDB, credential_id, {"claims": claims})

        res = self.client.post(
            "/api/holder/present-proof",
            json={"proofRequestId": proof_request_id, "credentialId": credential_id},
        )
        assert res.status_code == 500
        assert res.json() == {"error": "Decryption failed"}
        assert self.items("/api/presentations") == []
        assert self.items("/api/proof-requests")[0]["status"] == "requested"

    def test_store_failure(self):
        store = self.app.state.ssi.store
        Base.metadata.tables["connections"].drop(bind=store.engine)

        res = self.client.get("/api/connections")
        assert res.status_code == 500
        assert res.json()["error"].startswith("Store operation failed")

        res = self.client.post("/api/issuer/create-invitation", json={})
        assert res.status_code == 500

    # ==================== BODY HANDLING ====================

    def test_empty_proof_request_kept(self):
        connection_id = self.connect()
        res = self.client.post(
            "/api/verifier/send-proof-request",
            json={"connectionId": connection_id, "request": {}},
        )

        assert res.status_code == 200
        assert self.items("/api/proof-requests")[0]["request"] == {}

    def test_boolean_invite_code(self):
        res = self.client.post("/api/holder/receive-invitation", json={"inviteCode": True})

        assert res.status_code == 404
        assert res.json() == {"error": "Invalid invite code"}

    def test_body_too_large(self):
        settings = SSISettings(DATABASE_URL="sqlite://", AES_SECRET="api-test-secret", MAX_BODY_BYTES=64)
        with TestClient(create_app(settings)) as client:
            res = client.post(
                "/api/issuer/issue-credential",
                json={"connectionId": "c1", "claims": {"name": "x" * 100}},
            )
            assert res.status_code == 413
            assert res.json() == {"error": "Request body too large"}

            res = client.post("/api/issuer/create-invitation", json={})
            assert res.status_code == 200
