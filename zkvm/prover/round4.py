"""
Prover Round 4: 룩업 열기
==========================

trace의 모든 AND/OR 행에 대해 테이블 행 base + (x & 0xF)·16 + (y & 0xF)
에서 네 테이블 열을 연다. 샘플링이 아니라 전수 열거이므로 트랜스크립트를
건드리지 않는다.

사용:
    이 모듈은 직접 호출하지 않고, prover.prove()를 통해 실행된다.
"""

from zkvm.lookup import build_lookup_openings


def execute(state):
    if state.proof.lookup_commitments is None:
        state.proof.lookup_openings = []
        return
    state.proof.lookup_openings = build_lookup_openings(
        state.rows, state.ctx.lookup_table, state.srs
    )
