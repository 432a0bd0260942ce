"""
Prover Round 2: 전이 결함 Sum-Check
====================================

결함 테이블 f(i) = (pc[i+1] - pc[i] - 1)·(1 - halt[i])에 대해
log2(pow2) 라운드의 sum-check를 수행한다. 챌린지는 Round 1까지 흡수된
트랜스크립트에서 이어서 유도된다.

사용:
    이 모듈은 직접 호출하지 않고, prover.prove()를 통해 실행된다.
"""

from zkvm import sumcheck


def execute(state):
    table = sumcheck.transition_defects(state.columns)
    state.proof.sumcheck = sumcheck.prove(table, state.transcript)
