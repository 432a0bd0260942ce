"""
zkVM Flask Blueprint — 검증 세션 엔드포인트
=============================================

Verifier가 세션마다 새 도메인 태그를 발급하고, 그 태그로 만든 증명을
정확히 한 번 검증한다. 한 번 쓴 세션에 다시 제출하면 409를 돌려준다.

세션은 발급 시점에 공개된 코드 커밋먼트에 고정된다. 검증 요청에는
증명 텍스트만 담기며, 커밋먼트는 세션에 저장된 값을 쓴다.

  POST /zkvm/sessions                 새 세션 발급 (커밋먼트 고정, 무작위 도메인 태그)
  GET  /zkvm/sessions/<id>            세션 상태 조회
  POST /zkvm/sessions/<id>/verify     증명 텍스트 검증 (1회)
"""

import logging
import secrets

from flask import Blueprint, jsonify, request
from tinydb import Query

from zkvm.errors import MalformedInputError
from zkvm.serializers import commitment_from_text, proof_from_text
from zkvm.session import SessionBinding
from zkvm.verifier import verify

logger = logging.getLogger(__name__)

zkvm_bp = Blueprint('zkvm', __name__, url_prefix='/zkvm')

DATA = Query()

# DB와 VerifierContext는 app.py에서 주입
DB = None
CTX = None

STATUS_OPEN = "open"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"


def init_zkvm_bp(db, ctx):
    """app.py에서 DB와 VerifierContext를 주입받는다."""
    global DB, CTX
    DB = db
    CTX = ctx


# ─── DB 헬퍼 ───

def db_get(key):
    """DB에서 키로 데이터를 조회한다."""
    result = DB.search(DATA.type == key)
    if not result:
        return None
    return result[0].get("data")


def db_set(key, data):
    """DB에 키로 데이터를 저장한다."""
    DB.upsert({"type": key, "data": data}, DATA.type == key)


def session_key(session_id):
    return f"zkvm.session.{session_id}"


def _error(status, message):
    return jsonify({"error": message}), status


def _int_list(values):
    if not isinstance(values, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) and v >= 0 for v in values
    ):
        raise MalformedInputError("inputs는 음이 아닌 정수 리스트여야 합니다")
    return values


# ──────────────────────────────────────────────────────────────
# 세션
# ──────────────────────────────────────────────────────────────

@zkvm_bp.route("/sessions", methods=["POST"])
def create_session():
    """공개 커밋먼트에 고정된 새 검증 세션을 발급한다."""
    body = request.get_json(silent=True) or {}
    commitment_text = body.get("commitment")
    if not isinstance(commitment_text, str):
        return _error(400, "commitment text is required")
    try:
        code_commitment = commitment_from_text(commitment_text)
        inputs = _int_list(body.get("inputs", []))
    except MalformedInputError as e:
        return _error(400, str(e))
    expected = body.get("expected_output")
    if expected is not None and (not isinstance(expected, int) or isinstance(expected, bool)):
        return _error(400, "expected_output은 정수여야 합니다")

    session_id = secrets.token_hex(8)
    data = {
        "session_id": session_id,
        "domain_tag": secrets.token_hex(32),
        "code_sha256": code_commitment.code_hash.hex(),
        "commitment": commitment_text,
        "inputs": inputs,
        "expected_output": expected,
        "status": STATUS_OPEN,
        "reason": None,
    }
    db_set(session_key(session_id), data)
    logger.info("Opened verification session %s for code %s", session_id, data["code_sha256"])
    return jsonify(data), 201


@zkvm_bp.route("/sessions/<session_id>", methods=["GET"])
def get_session(session_id):
    """세션 상태를 돌려준다."""
    data = db_get(session_key(session_id))
    if data is None:
        return _error(404, "unknown session")
    return jsonify(data)


@zkvm_bp.route("/sessions/<session_id>/verify", methods=["POST"])
def verify_session(session_id):
    """세션에 고정된 커밋먼트와 도메인 태그로 증명을 한 번 검증한다."""
    data = db_get(session_key(session_id))
    if data is None:
        return _error(404, "unknown session")
    if data["status"] != STATUS_OPEN:
        return _error(409, "session already used")

    body = request.get_json(silent=True) or {}
    proof_text = body.get("proof")
    if not isinstance(proof_text, str):
        return _error(400, "proof text is required")

    binding = SessionBinding.from_tag(
        data["domain_tag"], data["inputs"], expected_output=data["expected_output"]
    )
    try:
        proof = proof_from_text(proof_text)
        code_commitment = commitment_from_text(data["commitment"])
        result = verify(code_commitment, binding, proof, CTX)
    except MalformedInputError as e:
        return _error(400, str(e))

    data["status"] = STATUS_ACCEPTED if result.accepted else STATUS_REJECTED
    data["reason"] = None if result.accepted else str(result.reason)
    db_set(session_key(session_id), data)
    logger.info("Session %s: %s", session_id, data["status"])

    return jsonify({"accepted": result.accepted, "reason": data["reason"]})
