"""
zkVM Prover — 4-라운드 프로토콜 오케스트레이터
===============================================

실행 trace 하나에 대한 증명 생성의 전체 흐름을 관리한다.

  ┌─────────────────────────────────────────────────────┐
  │  Round 1: 열 다항식 커밋 + 세션 바인딩               │
  │  Prover → Verifier: C_sess, [pc] [op] [x] [y] [z] [h]│
  │  (비트 연산 사용 시 룩업 테이블 커밋먼트 4개)          │
  ├─────────────────────────────────────────────────────┤
  │  Round 2: 전이 결함 sum-check                        │
  │  Prover → Verifier: (g0, slope) × log2(pow2)         │
  │  Verifier → Prover: r₁, r₂, ...  (Fiat-Shamir)      │
  ├─────────────────────────────────────────────────────┤
  │  Round 3: 샘플링된 열기                              │
  │  Verifier → Prover: 샘플 시드 (Fiat-Shamir)          │
  │  Prover → Verifier: opcode 열기, 인접 행 열기,       │
  │                     출력 열기                        │
  ├─────────────────────────────────────────────────────┤
  │  Round 4: 룩업 열기                                  │
  │  Prover → Verifier: AND/OR 행마다 테이블 열기 4개    │
  └─────────────────────────────────────────────────────┘

사용 예시:
    >>> from zkvm.prover import prove
    >>> proof = prove(code_commitment, binding, rows, ctx)
"""

import logging

from zkvm.transcript import Transcript
from zkvm.prover import round1, round2, round3, round4
from zkvm.prover.round3 import RowOpening

logger = logging.getLogger(__name__)

PROOF_VERSION = 1


class Proof:
    """증명 데이터 컨테이너.

    세션 바인딩:
        code_sha, domain_tag, input_hash: 32바이트
        session_commitment: G1 점

    Round 1 (열 커밋먼트):
        trace_len, trace_pow2: int
        column_commitments: 열 이름 → G1 점 (pc, op, x, y, z, halt)
        lookup_commitments: 열 이름 → G1 점 또는 None (비트 연산 미사용)

    Round 2:
        sumcheck: SumcheckProof

    Round 3:
        opcode_openings: [Opening]
        row_openings: [RowOpening]
        output_opening: Opening (z 열, 행 T-1)
        final_output: int

    Round 4:
        lookup_openings: [LookupOpening]
    """

    def __init__(self):
        self.version = PROOF_VERSION
        # 세션 바인딩
        self.code_sha = None
        self.domain_tag = None
        self.input_hash = None
        self.session_commitment = None
        # Round 1
        self.trace_len = None
        self.trace_pow2 = None
        self.column_commitments = None
        self.lookup_commitments = None
        # Round 2
        self.sumcheck = None
        # Round 3
        self.opcode_openings = []
        self.row_openings = []
        self.output_opening = None
        self.final_output = None
        # Round 4
        self.lookup_openings = []


class ProverState:
    """라운드 간 공유되는 Prover 상태.

    속성 (입력):
        code_commitment, binding, rows, ctx
        transcript: 이 실행 전용 Fiat-Shamir 트랜스크립트

    속성 (라운드 간 생성):
        columns: TraceColumns (Round 1)
        sample_seed: 샘플링 시드 (Round 3)

    속성 (출력):
        proof: Proof 객체
    """

    def __init__(self, code_commitment, binding, rows, ctx):
        self.code_commitment = code_commitment
        self.binding = binding
        self.rows = rows
        self.ctx = ctx
        self.srs = ctx.srs
        self.params = ctx.params

        self.transcript = Transcript()

        self.columns = None
        self.sample_seed = None

        self.proof = Proof()

    def build_proof(self):
        """최종 증명 객체를 반환한다."""
        return self.proof


def prove(code_commitment, binding, rows, ctx):
    """trace에 대한 증명을 생성한다.

    Args:
        code_commitment: CodeCommitment (공개된 프로그램 커밋먼트)
        binding: SessionBinding (Verifier가 고른 도메인 태그와 입력 해시)
        rows: TraceRow 리스트
        ctx: ProverContext

    Returns:
        Proof

    Raises:
        MalformedInputError: trace가 구조적으로 잘못되었거나, 비트 연산이
            있는데 룩업 테이블이 없을 때
        SRSCapacityError: trace가 SRS 용량보다 클 때
    """
    state = ProverState(code_commitment, binding, rows, ctx)

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 1: 열 인코딩 → 커밋 → 트랜스크립트 흡수       │
    # └─────────────────────────────────────────────────────┘
    round1.execute(state)

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 2: 전이 결함 sum-check                        │
    # └─────────────────────────────────────────────────────┘
    round2.execute(state)

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 3: 샘플 시드 → opcode / 행 / 출력 열기        │
    # └─────────────────────────────────────────────────────┘
    round3.execute(state)

    # ┌─────────────────────────────────────────────────────┐
    # │  Round 4: AND/OR 행 룩업 열기                        │
    # └─────────────────────────────────────────────────────┘
    round4.execute(state)

    logger.info(
        "Proof complete: %d rows, %d opcode / %d row / %d lookup openings",
        state.proof.trace_len,
        len(state.proof.opcode_openings),
        len(state.proof.row_openings),
        len(state.proof.lookup_openings),
    )
    return state.build_proof()
