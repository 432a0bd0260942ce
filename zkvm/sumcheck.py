"""
전이(Transition) Sum-Check
===========================

**결함(defect) 값**:
  행 i (0 ≤ i ≤ T-2)에 대해

      f(i) = (pc[i+1] - (pc[i] + 1)) · (1 - halt[i])

  pc가 정확히 1 증가하거나 halt 행이면 0이다. 나머지 패딩 구간은 0.

**프로토콜** (pow2 = 2^n, n 라운드):

  ┌──────────────────────────────────────────────────────┐
  │ 라운드 j:                                            │
  │   g(0) = Σ 짝수 위치,  g(1) = Σ 홀수 위치             │
  │   Prover → (g(0), g(1) - g(0))                       │
  │   트랜스크립트 흡수: g(0), g(1) → 챌린지 r            │
  │   접기: f'[k] = f[2k]·(1 - r) + f[2k+1]·r            │
  └──────────────────────────────────────────────────────┘

  Verifier는 매 라운드 g(0) + g(1) == 현재 주장값을 확인하고,
  같은 챌린지 r을 유도해 주장값을 g(r) = g(0) + slope·r 로 갱신한다.

**주장값(claimed_sum) 정책**:
  프로토콜 자체는 claimed_sum이 0이어야 한다고 강제하지 않는다.
  Verifier 쪽에서 0이 아니면 거부한다 (VerifierContext.require_zero_sum).
  마지막 라운드 뒤의 축약된 주장값은 다중선형 확장 f̃(r)와 대조되지
  않는다. 이 검사는 행 열기 샘플링이 부분적으로 대신한다.
"""

from zkvm.field import FR


class SumcheckProof:
    """Sum-check 증명.

    속성:
        rounds: [(g0, slope)] 라운드 메시지
        claimed_sum: 전체 합 주장값
    """

    def __init__(self, rounds, claimed_sum):
        self.rounds = rounds
        self.claimed_sum = claimed_sum


def transition_defects(columns):
    """열 값에서 길이 pow2의 결함 테이블을 만든다."""
    pc = columns.values["pc"]
    halt = columns.values["halt"]
    table = [FR(0)] * columns.pow2
    for i in range(columns.trace_len - 1):
        table[i] = (pc[i + 1] - (pc[i] + FR(1))) * (FR(1) - halt[i])
    return table


def _absorb_round(transcript, g0, g1):
    transcript.append_scalar(b"sc_g0", g0)
    transcript.append_scalar(b"sc_g1", g1)
    return transcript.challenge_scalar(b"sc_r")


def prove(table, transcript):
    """결함 테이블의 합에 대한 sum-check 증명을 만든다.

    Args:
        table: FR 리스트 (길이는 2의 거듭제곱)
        transcript: 열 커밋먼트까지 흡수된 Transcript

    Returns:
        SumcheckProof
    """
    cur = list(table)
    claimed_sum = FR(0)
    for v in cur:
        claimed_sum = claimed_sum + v

    rounds = []
    while len(cur) > 1:
        g0 = FR(0)
        g1 = FR(0)
        for k in range(0, len(cur), 2):
            g0 = g0 + cur[k]
            g1 = g1 + cur[k + 1]
        rounds.append((g0, g1 - g0))

        r = _absorb_round(transcript, g0, g1)
        one_minus_r = FR(1) - r
        cur = [cur[k] * one_minus_r + cur[k + 1] * r for k in range(0, len(cur), 2)]

    return SumcheckProof(rounds, claimed_sum)


def verify(proof, transcript):
    """라운드 메시지를 재생하며 일관성을 확인한다.

    Returns:
        (bool, FR): 성공 여부와 마지막 축약 주장값.
            실패하면 (False, 실패 시점의 주장값).
    """
    cur = proof.claimed_sum
    for g0, slope in proof.rounds:
        g1 = g0 + slope
        if g0 + g1 != cur:
            return False, cur
        r = _absorb_round(transcript, g0, g1)
        cur = g0 + slope * r
    return True, cur
