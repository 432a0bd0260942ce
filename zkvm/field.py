"""
zkVM 기반 모듈: 유한체(Finite Field) 및 타원곡선 연산
======================================================

이 모듈은 증명 시스템 전체에서 사용되는 기본 대수적 도구를 정의한다.

**유한체 FR**:
  bn128 타원곡선의 스칼라 필드 (scalar field). trace 열 다항식, sum-check
  라운드 메시지, 챌린지 등 모든 프로토콜 값의 산술 단위이다.
  - 위수(order) r ≈ 2^254, 소수체(prime field)
  - 64비트 trace 값은 항상 r보다 작으므로 그대로 원소가 된다

**타원곡선 연산**:
  KZG 커밋먼트와 검증을 위한 G1, G2 그룹 연산 및 페어링.
  py_ecc.optimized_bn128 (사영 좌표, projective coordinates)을 사용한다.
  사영 좌표에서는 같은 점이 여러 표현을 가지므로 비교는 반드시 ec_eq로 한다.

**직렬화 보조**:
  G1 점 ↔ 64바이트 (x ‖ y, 아핀 좌표, 무한원점은 0으로 채움).
  트랜스크립트와 파일 포맷이 같은 인코딩을 공유한다.

사용 예시:
    >>> from zkvm.field import FR, G1, ec_mul, ec_eq
    >>> a = FR(3)
    >>> b = FR(7)
    >>> c = a * b        # FR(21)
    >>> P = ec_mul(G1, 5)  # 5·G1
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import optimized_bn128 as bn128


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    bn128.curve_order (≈ 2^254) 위의 모듈러 산술을 지원한다.
    py_ecc의 FQ 클래스를 상속하여 +, -, *, /, ** 등의 필드 연산을 제공한다.

    예시:
        >>> x = FR(3)
        >>> x * x          # FR(9)
        >>> FR(1) / FR(3)   # 3의 모듈러 역원
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (필드 크기)
CURVE_ORDER = bn128.curve_order

# 기저체 위수 (좌표 범위)
FIELD_MODULUS = bn128.field_modulus

U64_MASK = (1 << 64) - 1


def fr_from_u64(value):
    """64비트 부호 없는 정수를 FR 원소로 올린다.

    Raises:
        ValueError: 값이 [0, 2^64) 범위를 벗어날 때
    """
    if value < 0 or value > U64_MASK:
        raise ValueError(f"64비트 범위를 벗어난 값: {value}")
    return FR(value)


def fr_to_u64(element):
    """FR 원소를 64비트 정수로 내린다.

    trace 값은 항상 2^64 미만이므로 그보다 큰 원소는 정상 trace에서
    나올 수 없다. 이런 값은 잘라내지 않는다.

    Raises:
        ValueError: 원소가 2^64 이상일 때
    """
    n = int(element)
    if n > U64_MASK:
        raise ValueError(f"64비트 값이 아닌 원소: {n}")
    return n


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 상수 및 연산
# ─────────────────────────────────────────────────────────────────────

# G1 / G2 그룹 생성자 (generator)
G1 = bn128.G1
G2 = bn128.G2

# 영점 (point at infinity) - 항등원, 사영 좌표 (1, 1, 0)
Z1 = bn128.Z1
Z2 = bn128.Z2


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point.

    Args:
        point: G1 또는 G2 위의 점
        scalar: 정수 또는 FR 원소

    Returns:
        scalar · point (같은 그룹의 점)
    """
    if isinstance(scalar, FR):
        scalar = int(scalar)
    return bn128.multiply(point, scalar % CURVE_ORDER)


def ec_add(p1, p2):
    """타원곡선 점 덧셈: p1 + p2."""
    return bn128.add(p1, p2)


def ec_neg(point):
    """타원곡선 점의 역원 (negation): -point."""
    return bn128.neg(point)


def ec_eq(p1, p2):
    """사영 좌표 표현과 무관하게 두 점이 같은지 비교한다."""
    return bn128.eq(p1, p2)


def is_identity(point):
    """무한원점인지 확인한다."""
    return bn128.is_inf(point)


def is_on_g1(point):
    """G1 곡선 위의 올바른 사영 점인지 확인한다.

    파일이나 네트워크에서 온 점은 페어링 전에 반드시 이 검사를 거친다.
    (py_ecc.pairing은 곡선 밖의 점에 대해 assert로 중단한다.)
    bn128 G1의 여인수(cofactor)는 1이므로 곡선 위 = 부분군 위이다.
    """
    if not isinstance(point, tuple) or len(point) != 3:
        return False
    if not all(isinstance(c, bn128.FQ) for c in point):
        return False
    return bn128.is_on_curve(point, bn128.b)


def is_on_g2(point):
    """G2 (twist) 곡선 위의 점인지 확인한다."""
    if not isinstance(point, tuple) or len(point) != 3:
        return False
    if not all(isinstance(c, bn128.FQ2) for c in point):
        return False
    return bn128.is_on_curve(point, bn128.b2)


def ec_pairing(g2_point, g1_point):
    """쌍선형 페어링 e(G1, G2) → GT.

    Args:
        g2_point: G2 위의 점
        g1_point: G1 위의 점

    Returns:
        GT 원소 (FQ12)

    주의:
        py_ecc pairing의 인자 순서는 (G2, G1)이다.
    """
    return bn128.pairing(g2_point, g1_point)


# ─────────────────────────────────────────────────────────────────────
# 아핀 좌표 변환 (직렬화용)
# ─────────────────────────────────────────────────────────────────────

def g1_to_affine(point):
    """G1 점 → (x, y) 정수 쌍. 무한원점은 None."""
    if bn128.is_inf(point):
        return None
    x, y = bn128.normalize(point)
    return int(x), int(y)


def g1_from_affine(xy):
    """(x, y) 정수 쌍 또는 None → 사영 G1 점.

    곡선 위에 있는지는 검사하지 않는다. 검증 단계에서 is_on_g1로 걸러낸다.
    """
    if xy is None:
        return Z1
    x, y = xy
    return (bn128.FQ(x), bn128.FQ(y), bn128.FQ.one())


def g1_to_bytes(point):
    """G1 점을 64바이트 x ‖ y (빅엔디안)로 인코딩한다. 무한원점은 0 64바이트."""
    xy = g1_to_affine(point)
    if xy is None:
        return b"\x00" * 64
    return xy[0].to_bytes(32, "big") + xy[1].to_bytes(32, "big")


def g2_to_affine(point):
    """G2 점 → ((x0, x1), (y0, y1)) 정수 튜플."""
    x, y = bn128.normalize(point)
    return (
        tuple(int(c) for c in x.coeffs),
        tuple(int(c) for c in y.coeffs),
    )


def g2_from_affine(xy):
    """((x0, x1), (y0, y1)) → 사영 G2 점."""
    x, y = xy
    return (bn128.FQ2(list(x)), bn128.FQ2(list(y)), bn128.FQ2.one())
