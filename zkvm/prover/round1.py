"""
Prover Round 1: 열 커밋먼트와 세션 바인딩
==========================================

  ┌─────────────────────────────────────────────────┐
  │  Prover → Verifier: C_sess, 열 커밋먼트 6개       │
  │                                                 │
  │  입력:  trace, CodeCommitment, SessionBinding   │
  │  출력:  커밋먼트 + 트랜스크립트 흡수 완료        │
  └─────────────────────────────────────────────────┘

**과정**:
  1. trace 구조 검증 (빈 trace, 범위, 순서)
  2. 열 인코딩 (pc, op, x, y, z, halt) 및 KZG 커밋
  3. 세션 커밋먼트 C_sess = base + commit(blind(domain_tag))
  4. AND/OR 행이 있으면 룩업 테이블 커밋먼트 첨부
  5. 고정 순서로 트랜스크립트 흡수 (absorb_statement)

absorb_statement는 Verifier도 그대로 호출한다. 흡수 순서를 한 곳에서만
정의하기 위함이다.

사용:
    이 모듈은 직접 호출하지 않고, prover.prove()를 통해 실행된다.
"""

import logging

from zkvm.columns import COLUMN_NAMES, encode_columns, commit_columns
from zkvm.errors import MalformedInputError, SRSCapacityError
from zkvm.lookup import LOOKUP_COLUMNS
from zkvm.session import session_commitment
from zkvm.trace import validate_trace, uses_bitwise, final_output

logger = logging.getLogger(__name__)


def absorb_statement(transcript, proof):
    """공개 진술을 프로토콜 순서대로 흡수한다.

    domain_tag, input_hash, code_hash, session_commitment,
    pc, op, x, y, z, halt 커밋먼트 [, 룩업 테이블 커밋먼트 a, b, result, op_tag]
    """
    transcript.append_message(b"domain_tag", proof.domain_tag)
    transcript.append_message(b"input_hash", proof.input_hash)
    transcript.append_message(b"code_hash", proof.code_sha)
    transcript.append_point(b"session_comm", proof.session_commitment)
    for name in COLUMN_NAMES:
        transcript.append_point(name.encode() + b"_comm", proof.column_commitments[name])
    if proof.lookup_commitments is not None:
        for name in LOOKUP_COLUMNS:
            transcript.append_point(b"lut_" + name.encode(), proof.lookup_commitments[name])


def execute(state):
    """Round 1을 실행한다.

    Args:
        state: ProverState. rows를 읽고 columns와 커밋먼트를 기록한다.
    """
    rows = state.rows
    validate_trace(rows)

    needs_lookup = uses_bitwise(rows)
    if needs_lookup and state.ctx.lookup_table is None:
        raise MalformedInputError("비트 연산 행이 있지만 룩업 테이블이 없습니다")

    # ── 1. 열 인코딩 ──
    columns = encode_columns(rows)
    if columns.pow2 > len(state.srs):
        raise SRSCapacityError(
            f"trace 도메인 {columns.pow2}가 SRS 용량 {len(state.srs)}을 초과합니다"
        )
    state.columns = columns

    # ── 2. 공개 진술 ──
    proof = state.proof
    proof.code_sha = state.code_commitment.code_hash
    proof.domain_tag = state.binding.domain_tag
    proof.input_hash = state.binding.input_hash
    proof.session_commitment = session_commitment(
        state.code_commitment.base_commitment,
        state.binding.domain_tag,
        state.srs,
        state.params.blinding_degree,
    )
    proof.trace_len = columns.trace_len
    proof.trace_pow2 = columns.pow2
    proof.final_output = final_output(rows)

    # ── 3. 커밋 ──
    proof.column_commitments = commit_columns(columns, state.srs)
    if needs_lookup:
        proof.lookup_commitments = dict(state.ctx.lookup_table.commitments(state.srs))

    # ── 4. 흡수 ──
    absorb_statement(state.transcript, proof)
    logger.info("Round 1: committed %d columns over %d points", len(COLUMN_NAMES), columns.pow2)
