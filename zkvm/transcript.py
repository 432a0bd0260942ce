"""
zkVM Fiat-Shamir Transcript
=============================

비대화식(non-interactive) 변환을 위한 Fiat-Shamir 해싱 구현.

**흡수 순서 (프로토콜의 일부)**:
  1. domain_tag, input_hash, code_hash
  2. session_commitment
  3. 열 커밋먼트 pc, op, x, y, z, halt
  4. (비트 연산이 쓰인 경우) 룩업 테이블 커밋먼트 a, b, result, op_tag
  5. sum-check 라운드마다 g(0), g(1) 흡수 → 챌린지 r
  6. 마지막 squeeze → 샘플링 시드

  Prover와 Verifier가 이 순서를 한 바이트라도 다르게 흡수하면 챌린지가
  달라진다. 오류가 나는 것이 아니라 조용히 검증이 깨지므로 순서를
  바꾸지 말 것.

**인덱스 유도 (derive_indices)**:
  시드로부터 카운터 모드 SHA-256을 돌려 앞 8바이트를 도메인 크기로
  나눈 나머지를 샘플 인덱스로 쓴다.

사용 예시:
    >>> t = Transcript()
    >>> t.append_point(b"pc_comm", commitment)
    >>> r = t.challenge_scalar(b"sc_r")
"""

import hashlib

from zkvm.field import FR, CURVE_ORDER, g1_to_bytes


class Transcript:
    """SHA-256 기반 Fiat-Shamir 트랜스크립트.

    속성:
        state: 현재까지 누적된 해시 입력 바이트열
    """

    def __init__(self, label=b"zkvm-trace"):
        self.state = bytearray()
        self.state.extend(label)

    def append_message(self, label, data):
        """원시 바이트열(해시값 등)을 추가한다."""
        self.state.extend(label)
        self.state.extend(len(data).to_bytes(4, "big"))
        self.state.extend(data)

    def append_scalar(self, label, scalar):
        """FR 스칼라 값을 32바이트 빅엔디안으로 추가한다."""
        self.state.extend(label)
        val = int(scalar) % CURVE_ORDER
        self.state.extend(val.to_bytes(32, "big"))

    def append_point(self, label, point):
        """G1 점을 아핀 x ‖ y 64바이트로 추가한다 (무한원점은 0)."""
        self.state.extend(label)
        self.state.extend(g1_to_bytes(point))

    def squeeze(self, label):
        """현재 상태의 SHA-256 다이제스트를 반환하고 상태에 다시 이어 붙인다.

        Returns:
            bytes: 32바이트 다이제스트
        """
        self.state.extend(label)
        h = hashlib.sha256(bytes(self.state)).digest()
        self.state.extend(h)
        return h

    def challenge_scalar(self, label):
        """트랜스크립트로부터 챌린지 스칼라를 생성한다.

        다이제스트를 FR로 축소한다. 다이제스트는 상태에 체이닝되므로 같은
        레이블로 연속 호출해도 서로 다른 챌린지가 나온다.
        """
        h = self.squeeze(label)
        return FR(int.from_bytes(h, "big") % CURVE_ORDER)


def derive_indices(seed, domain, count):
    """시드에서 [0, domain) 범위의 인덱스 count개를 결정론적으로 유도한다.

    cur = seed
    반복: d = SHA256(cur ‖ ctr) (ctr = 0..3, 4바이트 빅엔디안)
          인덱스 = 앞 8바이트 (빅엔디안) mod domain, cur = d

    Args:
        seed: 32바이트 시드
        domain: 도메인 크기 (양수)
        count: 뽑을 인덱스 개수

    Returns:
        list[int]: 중복을 허용하는 인덱스 리스트
    """
    if domain <= 0:
        raise ValueError(f"도메인 크기는 양수여야 합니다: {domain}")
    indices = []
    cur = bytes(seed)
    while len(indices) < count:
        for ctr in range(4):
            if len(indices) >= count:
                break
            d = hashlib.sha256(cur + ctr.to_bytes(4, "big")).digest()
            indices.append(int.from_bytes(d[:8], "big") % domain)
            cur = d
    return indices


def row_sample_seed(seed):
    """행 쌍 샘플링용 시드: SHA256(seed ‖ 'R')."""
    return hashlib.sha256(bytes(seed) + b"R").digest()
