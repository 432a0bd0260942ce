"""
zkVM Verifier
==============

증명을 받아 Prover의 트랜스크립트를 그대로 재생하고 모든 대수적 검사를
수행한다. 프로그램을 다시 실행하지 않는다.

**검증 순서**:
  1. 세션 바인딩: code_sha, domain_tag, 세션 커밋먼트 재계산, input_hash,
     (지정된 경우) 기대 출력
  2. 룩업 테이블 커밋먼트: Verifier 자신이 계산한 값과 일치해야 함
  3. 트랜스크립트 재생 (Round 1과 같은 absorb_statement)
  4. Sum-check: claimed_sum == 0 정책, 라운드 수, 라운드별 g(0)+g(1)
  5. 샘플 인덱스 재유도 → opcode 열기 (페어링 + 허용 목록)
  6. 인접 행 열기 (페어링 7개 + pc 전이 + opcode별 산술)
  7. 출력 열기 (z[T-1] 을 64비트 정수로 내린 값 == final_output)
  8. 룩업 열기 (샘플링된 비트 연산 행의 묶음 존재, 페어링 4개, 테이블 행 번호, 연산 결과)

**실패 보고**:
  암호학적 검사 실패는 예외가 아니다. 첫 번째 실패 지점의 Reason과 함께
  VerificationResult(accepted=False)를 돌려준다.
  구조적으로 잘못된 증명(필드 누락, 타입 오류, 모순된 크기)은
  MalformedInputError로 즉시 중단한다.

사용 예시:
    >>> result = verify(code_commitment, binding, proof, ctx)
    >>> if not result:
    ...     print(result.reason)
"""

import logging
from enum import Enum

from zkvm.columns import COLUMN_NAMES, next_power_of_2
from zkvm.errors import MalformedInputError
from zkvm.field import FR, U64_MASK, ec_eq, fr_to_u64
from zkvm.kzg import Opening
from zkvm.lookup import LOOKUP_COLUMNS, TABLE_SIZE, LookupOpening, table_base
from zkvm.prover import round1, round3
from zkvm.prover.round3 import RowOpening
from zkvm.session import session_commitment
from zkvm import sumcheck
from zkvm.trace import ALLOWED_OPCODES, BITWISE_OPCODES, OpCode, expected_result
from zkvm.transcript import Transcript

logger = logging.getLogger(__name__)


class Reason(str, Enum):
    CODE_SHA_MISMATCH = "code-sha-mismatch"
    SESSION_COMMITMENT_MISMATCH = "session-commitment-mismatch"
    DOMAIN_TAG_MISMATCH = "domain-tag-mismatch"
    INPUT_HASH_MISMATCH = "input-hash-mismatch"
    UNEXPECTED_OUTPUT = "unexpected-output"
    LOOKUP_TABLE_MISMATCH = "lookup-table-commitment-mismatch"
    UNEXPECTED_LOOKUP_OPENINGS = "unexpected-lookup-openings"
    MISSING_LOOKUP_OPENING = "missing-lookup-opening"
    SUMCHECK_NONZERO_CLAIM = "sumcheck-claimed-sum-nonzero"
    SUMCHECK_ROUND_COUNT = "sumcheck-round-count-mismatch"
    SUMCHECK_FAILED = "sumcheck-failed"
    OPCODE_OPENING_COUNT = "opcode-opening-count-mismatch"
    OPCODE_OPENING_INDEX = "opcode-opening-index-mismatch"
    OPCODE_OPENING_PAIRING = "opcode-opening-pairing-failed"
    OPCODE_NOT_ALLOWED = "opcode-not-allowed"
    ROW_OPENING_COUNT = "row-opening-count-mismatch"
    ROW_OPENING_INDEX = "row-opening-index-mismatch"
    ROW_PC_OPENING = "row-pc-opening-failed"
    ROW_PC_NEXT_OPENING = "row-pc-next-opening-failed"
    ROW_OP_OPENING = "row-op-opening-failed"
    ROW_X_OPENING = "row-x-opening-failed"
    ROW_Y_OPENING = "row-y-opening-failed"
    ROW_Z_OPENING = "row-z-opening-failed"
    ROW_HALT_OPENING = "row-halt-opening-failed"
    HALT_FLAG_INCONSISTENT = "halt-flag-inconsistent"
    PC_TRANSITION = "pc-transition-failed"
    ROW_VALUE_OUT_OF_RANGE = "row-value-out-of-range"
    ADD_SEMANTICS = "add-semantics"
    SUB_SEMANTICS = "sub-semantics"
    MUL_SEMANTICS = "mul-semantics"
    AND_SEMANTICS = "and-semantics"
    OR_SEMANTICS = "or-semantics"
    OUTPUT_OPENING_INDEX = "output-opening-index-mismatch"
    OUTPUT_OPENING_PAIRING = "output-opening-pairing-failed"
    OUTPUT_MISMATCH = "final-output-mismatch"
    LOOKUP_ROW_OUT_OF_RANGE = "lookup-row-out-of-range"
    LOOKUP_INDEX_MISMATCH = "lookup-index-mismatch"
    LOOKUP_A_OPENING = "lookup-a-opening-failed"
    LOOKUP_B_OPENING = "lookup-b-opening-failed"
    LOOKUP_RESULT_OPENING = "lookup-result-opening-failed"
    LOOKUP_OP_OPENING = "lookup-op-tag-opening-failed"
    LOOKUP_UNEXPECTED_OP = "lookup-unexpected-op"
    LOOKUP_AND_SEMANTICS = "lookup-and-semantics"
    LOOKUP_OR_SEMANTICS = "lookup-or-semantics"
    LOOKUP_ROW_MISMATCH = "lookup-row-mismatch"

    def __str__(self):
        return self.value


_SEMANTIC_REASONS = {
    OpCode.ADD: Reason.ADD_SEMANTICS,
    OpCode.SUB: Reason.SUB_SEMANTICS,
    OpCode.MUL: Reason.MUL_SEMANTICS,
    OpCode.AND: Reason.AND_SEMANTICS,
    OpCode.OR: Reason.OR_SEMANTICS,
}

_ROW_OPENING_REASONS = (
    ("pc", Reason.ROW_PC_OPENING),
    ("pc_next", Reason.ROW_PC_NEXT_OPENING),
    ("op", Reason.ROW_OP_OPENING),
    ("x", Reason.ROW_X_OPENING),
    ("y", Reason.ROW_Y_OPENING),
    ("z", Reason.ROW_Z_OPENING),
    ("halt", Reason.ROW_HALT_OPENING),
)

_LOOKUP_OPENING_REASONS = (
    ("a", Reason.LOOKUP_A_OPENING),
    ("b", Reason.LOOKUP_B_OPENING),
    ("result", Reason.LOOKUP_RESULT_OPENING),
    ("op_tag", Reason.LOOKUP_OP_OPENING),
)


class VerificationResult:
    """검증 결과. bool로 평가하면 accepted와 같다."""

    def __init__(self, accepted, reason=None):
        self.accepted = accepted
        self.reason = reason

    def __bool__(self):
        return self.accepted

    def __repr__(self):
        if self.accepted:
            return "VerificationResult(ACCEPT)"
        return f"VerificationResult(REJECT, {self.reason.value})"


ACCEPT = VerificationResult(True)


def _reject(reason):
    logger.info("Verification rejected: %s", reason.value)
    return VerificationResult(False, reason)


class VerifierState:
    """한 번의 검증 실행 상태 (트랜스크립트 소유)."""

    def __init__(self, code_commitment, binding, proof, ctx):
        self.code_commitment = code_commitment
        self.binding = binding
        self.proof = proof
        self.ctx = ctx
        self.srs = ctx.srs
        self.params = ctx.params
        self.transcript = Transcript()
        # 샘플링된 행 번호 → 열린 (x, y, z, op) 값. 룩업 교차 검사용
        self.sampled_rows = {}


# ─────────────────────────────────────────────────────────────────────
# 구조 검사
# ─────────────────────────────────────────────────────────────────────

def _require(cond, message):
    if not cond:
        raise MalformedInputError(f"잘못된 증명 구조: {message}")


def _check_opening_shape(opening, what):
    _require(isinstance(opening, Opening), f"{what}: Opening이 아닙니다")
    _require(isinstance(opening.index, int) and opening.index >= 0, f"{what}: index")
    _require(isinstance(opening.value, FR), f"{what}: value")
    _require(isinstance(opening.witness, tuple), f"{what}: witness")


def check_structure(proof):
    """증명의 필드 타입과 크기 관계를 검사한다.

    Raises:
        MalformedInputError
    """
    for name in ("code_sha", "domain_tag", "input_hash"):
        value = getattr(proof, name, None)
        _require(isinstance(value, bytes) and len(value) == 32, name)
    _require(isinstance(proof.session_commitment, tuple), "session_commitment")
    _require(isinstance(proof.trace_len, int) and proof.trace_len >= 1, "trace_len")
    _require(
        isinstance(proof.trace_pow2, int) and proof.trace_pow2 == next_power_of_2(proof.trace_len),
        "trace_pow2",
    )
    _require(
        isinstance(proof.final_output, int) and 0 <= proof.final_output <= U64_MASK,
        "final_output",
    )
    _require(
        isinstance(proof.column_commitments, dict)
        and tuple(proof.column_commitments) == COLUMN_NAMES,
        "column_commitments",
    )
    if proof.lookup_commitments is not None:
        _require(
            isinstance(proof.lookup_commitments, dict)
            and tuple(proof.lookup_commitments) == LOOKUP_COLUMNS,
            "lookup_commitments",
        )

    sc = proof.sumcheck
    _require(sc is not None and isinstance(sc.claimed_sum, FR), "sumcheck")
    for g0, slope in sc.rounds:
        _require(isinstance(g0, FR) and isinstance(slope, FR), "sumcheck round")

    for opening in proof.opcode_openings:
        _check_opening_shape(opening, "opcode opening")
    for ro in proof.row_openings:
        _require(isinstance(ro, RowOpening) and isinstance(ro.index, int), "row opening")
        for attr, _ in _ROW_OPENING_REASONS:
            _check_opening_shape(getattr(ro, attr), f"row opening {attr}")
    _check_opening_shape(proof.output_opening, "output opening")
    for group in proof.lookup_openings:
        _require(isinstance(group, LookupOpening), "lookup opening")
        _require(isinstance(group.row, int) and isinstance(group.index, int), "lookup opening row")
        _require(tuple(group.openings) == LOOKUP_COLUMNS, "lookup opening columns")
        for name in LOOKUP_COLUMNS:
            _check_opening_shape(group.openings[name], f"lookup opening {name}")


# ─────────────────────────────────────────────────────────────────────
# 단계별 검사 (각 함수는 실패 시 Reason, 성공 시 None)
# ─────────────────────────────────────────────────────────────────────

def check_binding(state):
    proof = state.proof
    binding = state.binding
    if proof.code_sha != state.code_commitment.code_hash:
        return Reason.CODE_SHA_MISMATCH
    if proof.domain_tag != binding.domain_tag:
        return Reason.DOMAIN_TAG_MISMATCH

    expected = session_commitment(
        state.code_commitment.base_commitment,
        binding.domain_tag,
        state.srs,
        state.params.blinding_degree,
    )
    if not ec_eq(expected, proof.session_commitment):
        return Reason.SESSION_COMMITMENT_MISMATCH
    if proof.input_hash != binding.input_hash:
        return Reason.INPUT_HASH_MISMATCH
    if binding.expected_output is not None and proof.final_output != binding.expected_output:
        return Reason.UNEXPECTED_OUTPUT
    return None


def check_lookup_commitments(state):
    proof = state.proof
    if proof.lookup_commitments is None:
        if proof.lookup_openings:
            return Reason.UNEXPECTED_LOOKUP_OPENINGS
        return None
    if state.ctx.lookup_table is None:
        raise MalformedInputError("룩업 테이블 커밋먼트가 있는 증명에는 룩업 테이블이 필요합니다")
    published = state.ctx.lookup_table.commitments(state.srs)
    for name in LOOKUP_COLUMNS:
        if not ec_eq(published[name], proof.lookup_commitments[name]):
            return Reason.LOOKUP_TABLE_MISMATCH
    return None


def check_sumcheck(state):
    sc = state.proof.sumcheck
    if state.ctx.require_zero_sum and sc.claimed_sum != FR(0):
        return Reason.SUMCHECK_NONZERO_CLAIM
    if len(sc.rounds) != state.proof.trace_pow2.bit_length() - 1:
        return Reason.SUMCHECK_ROUND_COUNT
    ok, _ = sumcheck.verify(sc, state.transcript)
    if not ok:
        return Reason.SUMCHECK_FAILED
    return None


def check_opcode_openings(state, indices):
    proof = state.proof
    if len(proof.opcode_openings) != len(indices):
        return Reason.OPCODE_OPENING_COUNT
    op_comm = proof.column_commitments["op"]
    for expected_index, opening in zip(indices, proof.opcode_openings):
        if opening.index != expected_index:
            return Reason.OPCODE_OPENING_INDEX
        if not opening.verify(op_comm, state.srs):
            return Reason.OPCODE_OPENING_PAIRING
        if int(opening.value) not in ALLOWED_OPCODES:
            return Reason.OPCODE_NOT_ALLOWED
    return None


def _check_row_semantics(ro):
    """열린 값들에 대한 halt 일관성, pc 전이, opcode별 산술 검사."""
    halt = int(ro.halt.value)
    op = int(ro.op.value)
    if op not in ALLOWED_OPCODES:
        return Reason.OPCODE_NOT_ALLOWED
    if halt not in (0, 1) or (halt == 1) != (op == OpCode.HALT):
        return Reason.HALT_FLAG_INCONSISTENT
    if halt == 0 and ro.pc_next.value != ro.pc.value + FR(1):
        return Reason.PC_TRANSITION

    opcode = OpCode(op)
    if opcode in (OpCode.PUSH, OpCode.HALT):
        return None

    try:
        x = fr_to_u64(ro.x.value)
        y = fr_to_u64(ro.y.value)
        z = fr_to_u64(ro.z.value)
    except ValueError:
        return Reason.ROW_VALUE_OUT_OF_RANGE

    expected = expected_result(opcode, x, y)
    actual = z & 0xF if opcode in BITWISE_OPCODES else z
    if actual != expected:
        return _SEMANTIC_REASONS[opcode]
    return None


def check_row_openings(state, indices):
    """인접 행 쌍 열기를 검사한다. indices는 샘플링된 행 번호이다."""
    proof = state.proof
    if len(proof.row_openings) != len(indices):
        return Reason.ROW_OPENING_COUNT

    comms = proof.column_commitments
    commitment_for = {
        "pc": comms["pc"], "pc_next": comms["pc"], "op": comms["op"],
        "x": comms["x"], "y": comms["y"], "z": comms["z"], "halt": comms["halt"],
    }
    for expected_index, ro in zip(indices, proof.row_openings):
        if ro.index != expected_index or ro.pc_next.index != expected_index + 1:
            return Reason.ROW_OPENING_INDEX
        if any(getattr(ro, attr).index != expected_index
               for attr, _ in _ROW_OPENING_REASONS if attr != "pc_next"):
            return Reason.ROW_OPENING_INDEX
        for attr, reason in _ROW_OPENING_REASONS:
            if not getattr(ro, attr).verify(commitment_for[attr], state.srs):
                return reason

        reason = _check_row_semantics(ro)
        if reason is not None:
            return reason
        state.sampled_rows[expected_index] = ro
        logger.debug("Row pair %d verified", expected_index)
    return None


def check_output_opening(state):
    proof = state.proof
    opening = proof.output_opening
    if opening.index != proof.trace_len - 1:
        return Reason.OUTPUT_OPENING_INDEX
    if not opening.verify(proof.column_commitments["z"], state.srs):
        return Reason.OUTPUT_OPENING_PAIRING
    # FR 비교는 mod r 이므로 정수로 내려서 비교한다
    try:
        opened = fr_to_u64(opening.value)
    except ValueError:
        return Reason.OUTPUT_MISMATCH
    if opened != proof.final_output:
        return Reason.OUTPUT_MISMATCH
    return None


def _check_lookup_group(state, group):
    proof = state.proof
    if not 0 <= group.row < proof.trace_len:
        return Reason.LOOKUP_ROW_OUT_OF_RANGE
    if not 0 <= group.index < TABLE_SIZE:
        return Reason.LOOKUP_INDEX_MISMATCH
    for name, reason in _LOOKUP_OPENING_REASONS:
        opening = group.openings[name]
        if opening.index != group.index:
            return Reason.LOOKUP_INDEX_MISMATCH
        if not opening.verify(proof.lookup_commitments[name], state.srs):
            return reason

    a = int(group.value("a"))
    b = int(group.value("b"))
    result = int(group.value("result"))
    op_tag = int(group.value("op_tag"))
    if op_tag not in (OpCode.AND, OpCode.OR):
        return Reason.LOOKUP_UNEXPECTED_OP
    opcode = OpCode(op_tag)
    if a > 0xF or b > 0xF or group.index != table_base(opcode) + a * 16 + b:
        return Reason.LOOKUP_INDEX_MISMATCH
    if result != expected_result(opcode, a, b):
        if opcode == OpCode.AND:
            return Reason.LOOKUP_AND_SEMANTICS
        return Reason.LOOKUP_OR_SEMANTICS

    # 같은 행이 인접 행 검사에서 열렸다면 trace 값과 테이블 값이 일치해야 한다
    ro = state.sampled_rows.get(group.row)
    if ro is not None:
        if (int(ro.op.value) != op_tag
                or int(ro.x.value) & 0xF != a
                or int(ro.y.value) & 0xF != b
                or int(ro.z.value) & 0xF != result):
            return Reason.LOOKUP_ROW_MISMATCH
    return None


def check_lookup_openings(state):
    proof = state.proof
    # 샘플링된 비트 연산 행에는 반드시 룩업 묶음이 있어야 한다.
    # 테이블 커밋먼트가 빠진 증명도 이 검사를 거친다.
    covered = {group.row for group in proof.lookup_openings}
    for index, ro in state.sampled_rows.items():
        if int(ro.op.value) in BITWISE_OPCODES and index not in covered:
            return Reason.MISSING_LOOKUP_OPENING
    if proof.lookup_commitments is None:
        return None
    if not proof.lookup_openings:
        return Reason.MISSING_LOOKUP_OPENING
    for group in proof.lookup_openings:
        reason = _check_lookup_group(state, group)
        if reason is not None:
            return reason
    return None


# ─────────────────────────────────────────────────────────────────────
# 진입점
# ─────────────────────────────────────────────────────────────────────

def verify(code_commitment, binding, proof, ctx):
    """증명을 검증한다.

    Args:
        code_commitment: CodeCommitment (공개된 프로그램 커밋먼트)
        binding: SessionBinding (Verifier가 이번 세션에 고른 값)
        proof: Proof
        ctx: VerifierContext

    Returns:
        VerificationResult

    Raises:
        MalformedInputError: 구조적으로 잘못된 증명
    """
    check_structure(proof)
    state = VerifierState(code_commitment, binding, proof, ctx)

    reason = check_binding(state) or check_lookup_commitments(state)
    if reason is not None:
        return _reject(reason)

    # ── 트랜스크립트 재생: Round 1 흡수 → Round 2 sum-check ──
    round1.absorb_statement(state.transcript, proof)
    reason = check_sumcheck(state)
    if reason is not None:
        return _reject(reason)

    # ── Round 3: 같은 샘플 인덱스 재유도 ──
    _, opcode_indices, row_indices = round3.sample_indices(
        state.transcript, proof.trace_len, state.params
    )
    reason = (
        check_opcode_openings(state, opcode_indices)
        or check_row_openings(state, row_indices)
        or check_output_opening(state)
        or check_lookup_openings(state)
    )
    if reason is not None:
        return _reject(reason)

    logger.info("Verification accepted (%d rows)", proof.trace_len)
    return ACCEPT
