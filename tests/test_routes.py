"""
Tests for the zkVM verification service (Flask Blueprint + TinyDB).

Covers:
- Session issuance (pinned to a published commitment) and status lookup
- One-time verification (accept, then 409 on reuse)
- Proof made for another session's tag is rejected with a reason
- Proof made for a different program is rejected against the pinned commitment
- Malformed submissions answer 400 and leave the session open
- Unknown sessions answer 404
"""

import pytest
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from app import create_app
from zkvm.config import ZKVMConfig
from zkvm.context import ProtocolParams, ProverContext, VerifierContext
from zkvm.prover import prove
from zkvm.serializers import commitment_to_text, proof_to_text
from zkvm.session import SessionBinding, commit_code
from zkvm.trace import OpCode, TraceRow

FAST = ProtocolParams(opcode_samples=1, row_samples=1)


def _rows():
    return [
        TraceRow(0, OpCode.PUSH, 4, 0, 4),
        TraceRow(1, OpCode.PUSH, 5, 0, 5),
        TraceRow(2, OpCode.MUL, 4, 5, 20),
        TraceRow.halt(3, result=20),
    ]


@pytest.fixture
def client(srs, lookup_table):
    app = create_app(
        config=ZKVMConfig(),
        db=TinyDB(storage=MemoryStorage),
        ctx=VerifierContext(srs, lookup_table, FAST),
    )
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def published(code_commitment):
    return commitment_to_text(code_commitment)


@pytest.fixture
def submit(srs, lookup_table, code_commitment):
    """세션 태그로 증명을 만들어 제출 본문을 돌려준다."""
    def make(tag, inputs=(), commitment=code_commitment):
        binding = SessionBinding.from_tag(tag, inputs)
        proof = prove(commitment, binding, _rows(), ProverContext(srs, lookup_table, FAST))
        return {"proof": proof_to_text(proof)}
    return make


def _open(client, commitment, **body):
    resp = client.post("/zkvm/sessions", json=dict(body, commitment=commitment))
    assert resp.status_code == 201
    return resp.get_json()


class TestSessions:
    """세션 발급과 조회."""

    def test_create(self, client, published, code_commitment):
        data = _open(client, published)
        assert data["status"] == "open"
        assert len(data["domain_tag"]) == 64
        assert data["inputs"] == []
        assert data["code_sha256"] == code_commitment.code_hash.hex()

    def test_tags_are_fresh(self, client, published):
        assert _open(client, published)["domain_tag"] != _open(client, published)["domain_tag"]

    def test_get(self, client, published, code_commitment):
        data = _open(client, published, inputs=[1, 2], expected_output=3)
        resp = client.get(f"/zkvm/sessions/{data['session_id']}")
        assert resp.status_code == 200
        assert resp.get_json()["inputs"] == [1, 2]
        assert resp.get_json()["expected_output"] == 3
        assert resp.get_json()["code_sha256"] == code_commitment.code_hash.hex()

    def test_unknown_session(self, client):
        assert client.get("/zkvm/sessions/nope").status_code == 404
        assert client.post("/zkvm/sessions/nope/verify", json={}).status_code == 404

    def test_bad_inputs(self, client, published):
        for body in ({"inputs": [-1]}, {"inputs": "1"}, {"expected_output": "x"}):
            resp = client.post("/zkvm/sessions", json=dict(body, commitment=published))
            assert resp.status_code == 400

    def test_commitment_required(self, client, published):
        assert client.post("/zkvm/sessions", json={}).status_code == 400
        bad = published.replace("version:1", "version:9")
        assert client.post("/zkvm/sessions", json={"commitment": bad}).status_code == 400


class TestVerify:
    """1회 검증."""

    def test_accept_once(self, client, published, submit):
        data = _open(client, published)
        url = f"/zkvm/sessions/{data['session_id']}/verify"
        body = submit(data["domain_tag"])

        resp = client.post(url, json=body)
        assert resp.status_code == 200
        assert resp.get_json() == {"accepted": True, "reason": None}

        status = client.get(f"/zkvm/sessions/{data['session_id']}").get_json()
        assert status["status"] == "accepted"

        assert client.post(url, json=body).status_code == 409

    def test_replayed_proof_rejected(self, client, published, submit):
        first = _open(client, published)
        body = submit(first["domain_tag"])
        second = _open(client, published)

        resp = client.post(f"/zkvm/sessions/{second['session_id']}/verify", json=body)
        assert resp.status_code == 200
        assert resp.get_json() == {"accepted": False, "reason": "domain-tag-mismatch"}
        status = client.get(f"/zkvm/sessions/{second['session_id']}").get_json()
        assert status["status"] == "rejected"
        assert status["reason"] == "domain-tag-mismatch"

    def test_other_program_rejected(self, client, published, submit, srs):
        """세션에 고정된 커밋먼트와 다른 프로그램의 증명은 거부된다."""
        other = commit_code(b"PUSH 4\nPUSH 5\nMUL\nHALT\n", srs, source_kind="asm")
        data = _open(client, published)
        body = submit(data["domain_tag"], commitment=other)
        body["commitment"] = commitment_to_text(other)

        resp = client.post(f"/zkvm/sessions/{data['session_id']}/verify", json=body)
        assert resp.status_code == 200
        assert resp.get_json() == {"accepted": False, "reason": "code-sha-mismatch"}

    def test_expected_output_enforced(self, client, published, submit):
        data = _open(client, published, expected_output=21)
        resp = client.post(f"/zkvm/sessions/{data['session_id']}/verify",
                           json=submit(data["domain_tag"]))
        assert resp.get_json()["reason"] == "unexpected-output"

    def test_malformed_keeps_session_open(self, client, published, submit):
        data = _open(client, published)
        url = f"/zkvm/sessions/{data['session_id']}/verify"
        body = submit(data["domain_tag"])

        assert client.post(url, json={"proof": body["proof"] + "junk:1\n"}).status_code == 400
        assert client.post(url, json={}).status_code == 400

        assert client.post(url, json=body).get_json()["accepted"] is True
