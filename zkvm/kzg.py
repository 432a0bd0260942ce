"""
KZG 다항식 커밋먼트 스킴
=========================

trace 열, 룩업 테이블, 코드/블라인딩 다항식은 모두 KZG로 커밋된다.

**커밋**:
  C = Σᵢ cᵢ · [sⁱ]₁ = p(s) · G1

**열기 증명 (Opening Proof)**:
  "p(z) = y" 임을 증명하는 방법:
  1. 합성 나눗셈으로 q(x) = (p(x) - y) / (x - z) 와 y = p(z)를 동시에 얻음
  2. 증명 π = q(s)·G1
  3. 검증: e(C - y·G1, h) == e(π, s·h - z·h)

  평가 점 z는 trace 행 번호(정수)이다.

사용 예시:
    >>> from zkvm.kzg import commit, open_at, verify_opening
    >>> C = commit(poly, srs)
    >>> y, pi = open_at(poly, 3, srs)
    >>> verify_opening(C, pi, 3, y, srs)  # True
"""

from zkvm.errors import SRSCapacityError
from zkvm.field import (
    FR, G1, Z1, ec_mul, ec_add, ec_neg, ec_pairing, is_on_g1,
)
from zkvm.polynomial import Polynomial


class Opening:
    """커밋된 다항식이 정수점 index에서 value로 평가된다는 증거.

    속성:
        index: 평가 점 (trace 행 번호 또는 테이블 행 번호)
        value: FR 평가값
        witness: G1 점 (몫 다항식 커밋먼트)
    """

    def __init__(self, index, value, witness):
        self.index = index
        self.value = value
        self.witness = witness

    @classmethod
    def create(cls, poly, index, srs):
        value, witness = open_at(poly, index, srs)
        return cls(index, value, witness)

    def verify(self, commitment, srs):
        return verify_opening(commitment, self.witness, self.index, self.value, srs)

    def __repr__(self):
        return f"Opening(index={self.index}, value={int(self.value)})"


def commit(poly, srs):
    """다항식을 KZG 커밋한다.

    C = Σᵢ cᵢ · [sⁱ]₁

    Args:
        poly: 커밋할 다항식 (Polynomial 또는 계수 리스트)
        srs: SRS

    Returns:
        G1 점: 커밋먼트 C (영 다항식이면 무한원점)

    Raises:
        SRSCapacityError: 계수 개수가 SRS G1 powers 개수를 초과할 때.
            잘라서 커밋하면 다른 다항식에 대한 커밋먼트가 되므로 항상 실패한다.
    """
    if not isinstance(poly, Polynomial):
        poly = Polynomial(poly)
    if len(poly) > len(srs.g1_powers):
        raise SRSCapacityError(
            f"다항식 계수 {len(poly)}개가 SRS 용량 {len(srs.g1_powers)}을 초과합니다"
        )

    result = Z1
    for i, coeff in enumerate(poly.coeffs):
        if coeff == FR(0):
            continue
        result = ec_add(result, ec_mul(srs.g1_powers[i], coeff))
    return result


def open_at(poly, index, srs):
    """정수점 index에서 다항식을 연다.

    Args:
        poly: 열어볼 다항식 p(x)
        index: 평가 점 (trace 행 번호)
        srs: SRS

    Returns:
        (FR, G1 점): 평가값 y = p(index)와 증인(witness) π.
        영 다항식이면 (0, 무한원점).
    """
    if poly.is_zero():
        return FR(0), Z1
    quotient, value = poly.divide_by_linear(index)
    return value, commit(quotient, srs)


def verify_opening(commitment, witness, point, evaluation, srs):
    """KZG 열기 증명을 검증한다.

    검증 방정식 (페어링):
        e(C - y·G1, h) == e(π, s·h - z·h)

    C와 π가 곡선 위의 점이 아니면 (조작된 입력) 페어링 없이 False를 반환한다.

    Args:
        commitment: 다항식 커밋먼트 C (G1 점)
        witness: 열기 증명 π (G1 점)
        point: 평가 점 z (정수 또는 FR)
        evaluation: 주장하는 평가값 y (FR)
        srs: SRS

    Returns:
        bool: 검증 성공 여부
    """
    if not is_on_g1(commitment) or not is_on_g1(witness):
        return False
    if not isinstance(point, FR):
        point = FR(point)
    if not isinstance(evaluation, FR):
        evaluation = FR(evaluation)

    h, s_h = srs.g2_powers[0], srs.g2_powers[1]
    s_minus_z_h = ec_add(s_h, ec_neg(ec_mul(h, point)))
    c_minus_y = ec_add(commitment, ec_neg(ec_mul(G1, evaluation)))

    lhs = ec_pairing(h, c_minus_y)
    rhs = ec_pairing(s_minus_z_h, witness)
    return lhs == rhs
