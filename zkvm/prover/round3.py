"""
Prover Round 3: 샘플링된 열기
==============================

  ┌─────────────────────────────────────────────────┐
  │  Verifier → Prover: 샘플 시드 (squeeze)          │
  │  Prover → Verifier: opcode 열기 k개              │
  │                     인접 행 쌍 열기 k개 × 7      │
  │                     출력 열기 (z, 행 T-1)        │
  └─────────────────────────────────────────────────┘

**샘플링**:
  seed = squeeze("sample")
  opcode 인덱스 = derive_indices(seed, T, opcode_samples)
  행 인덱스     = derive_indices(SHA256(seed ‖ 'R'), T-1, row_samples)  (T ≥ 2일 때만)

sample_indices는 Verifier도 그대로 호출한다.

사용:
    이 모듈은 직접 호출하지 않고, prover.prove()를 통해 실행된다.
"""

from zkvm.kzg import Opening
from zkvm.transcript import derive_indices, row_sample_seed


class RowOpening:
    """인접 행 쌍 (i, i+1)에 대한 열기 7개.

    pc는 i와 i+1에서, op/x/y/z/halt는 i에서 연다.
    """

    def __init__(self, index, pc, pc_next, op, x, y, z, halt):
        self.index = index
        self.pc = pc
        self.pc_next = pc_next
        self.op = op
        self.x = x
        self.y = y
        self.z = z
        self.halt = halt


def sample_indices(transcript, trace_len, params):
    """트랜스크립트에서 (opcode 인덱스, 행 인덱스)를 유도한다."""
    seed = transcript.squeeze(b"sample")
    opcode_indices = derive_indices(seed, trace_len, params.opcode_samples)
    if trace_len >= 2:
        row_indices = derive_indices(row_sample_seed(seed), trace_len - 1, params.row_samples)
    else:
        row_indices = []
    return seed, opcode_indices, row_indices


def open_opcodes(state, indices):
    op_poly = state.columns.polys["op"]
    return [Opening.create(op_poly, i, state.srs) for i in indices]


def open_rows(state, indices):
    """인접 행 쌍 인덱스마다 RowOpening을 만든다."""
    polys = state.columns.polys
    srs = state.srs
    openings = []
    for i in indices:
        openings.append(RowOpening(
            i,
            Opening.create(polys["pc"], i, srs),
            Opening.create(polys["pc"], i + 1, srs),
            Opening.create(polys["op"], i, srs),
            Opening.create(polys["x"], i, srs),
            Opening.create(polys["y"], i, srs),
            Opening.create(polys["z"], i, srs),
            Opening.create(polys["halt"], i, srs),
        ))
    return openings


def execute(state):
    proof = state.proof
    seed, opcode_indices, row_indices = sample_indices(
        state.transcript, proof.trace_len, state.params
    )
    state.sample_seed = seed

    proof.opcode_openings = open_opcodes(state, opcode_indices)
    proof.row_openings = open_rows(state, row_indices)
    proof.output_opening = Opening.create(
        state.columns.polys["z"], proof.trace_len - 1, state.srs
    )
