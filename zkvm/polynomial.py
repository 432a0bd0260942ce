"""
zkVM 기반 모듈: 다항식(Polynomial) 클래스 및 정수점 보간
==========================================================

이 모듈은 trace 열 다항식, 룩업 테이블 다항식, 세션 블라인딩 다항식에
쓰이는 모든 다항식 연산을 제공한다.

**Polynomial 클래스**:
  계수(coefficient) 표현 기반 다항식. p(x) = c₀ + c₁·x + c₂·x² + ...
  Horner 평가(evaluation)와 선형식 나눗셈을 지원한다.

**정수점 Lagrange 보간 (interpolate_range)**:
  평가 도메인은 단위근이 아니라 정수점 {0, 1, ..., n-1}이다.
  p(i) = vᵢ 를 만족하는 (n-1)차 이하 다항식을 O(n²)에 구한다.

  M(x) = ∏ⱼ (x - j)            (마스터 다항식, n차)
  Lᵢ(x) = M(x) / ((x - i) · dᵢ)
  dᵢ = ∏_{j≠i} (i - j) = i! · (n-1-i)! · (-1)^(n-1-i)

  (n-1-i)! 과 i! 만으로 분모가 결정되므로 역원 계산이 단순하다.

**합성 나눗셈 (divide_by_linear)**:
  KZG 열기 증명의 몫 q(x) = (p(x) - p(z)) / (x - z) 계산에 사용한다.

사용 예시:
    >>> from zkvm.polynomial import Polynomial, interpolate_range
    >>> p = interpolate_range([FR(5), FR(7), FR(9)])  # 5 + 2x
    >>> p.evaluate(FR(10))  # FR(25)
"""

from zkvm.field import FR, CURVE_ORDER


# ─────────────────────────────────────────────────────────────────────
# Polynomial 클래스
# ─────────────────────────────────────────────────────────────────────

class Polynomial:
    """유한체 FR 위의 다항식.

    계수 리스트로 표현: coeffs = [c₀, c₁, c₂, ...] → c₀ + c₁x + c₂x² + ...

    예시:
        >>> p = Polynomial([FR(1), FR(2)])  # 1 + 2x
        >>> p.evaluate(3)                    # FR(7)
        >>> q, r = p.divide_by_linear(3)     # q = 2, r = FR(7)
    """

    def __init__(self, coeffs=None):
        """다항식 생성.

        Args:
            coeffs: FR 원소 (또는 정수)의 리스트 [c₀, c₁, ...].
                    None이면 영 다항식(0)을 생성한다.
        """
        if coeffs is None:
            self.coeffs = [FR(0)]
        else:
            self.coeffs = [c if isinstance(c, FR) else FR(c) for c in coeffs]
            if not self.coeffs:
                self.coeffs = [FR(0)]
        self._trim()

    def _trim(self):
        """최고차 계수가 0인 항을 제거하여 정규화한다.

        예: [1, 2, 0, 0] → [1, 2]  (1 + 2x)
        """
        while len(self.coeffs) > 1 and self.coeffs[-1] == FR(0):
            self.coeffs.pop()

    @property
    def degree(self):
        """다항식의 차수. 영 다항식의 차수는 0으로 정의한다."""
        return len(self.coeffs) - 1

    def is_zero(self):
        """영 다항식인지 확인."""
        return len(self.coeffs) == 1 and self.coeffs[0] == FR(0)

    def evaluate(self, point):
        """다항식을 주어진 점에서 평가한다 (Horner's method).

        Args:
            point: 평가할 FR 원소 또는 정수

        Returns:
            FR: p(point) 값
        """
        if not isinstance(point, FR):
            point = FR(point)
        result = FR(0)
        for coeff in reversed(self.coeffs):
            result = result * point + coeff
        return result

    def divide_by_linear(self, point):
        """합성 나눗셈: p(x) = q(x)·(x - z) + r.

        최고차 계수부터 내려오며 bᵢ = cᵢ₊₁ + z·bᵢ₊₁ 를 누적한다.
        마지막 누적값이 나머지 r = p(z)이다.

        Args:
            point: z (FR 원소 또는 정수)

        Returns:
            (Polynomial, FR): 몫 q(x)와 나머지 r = p(z)
        """
        z = int(point) % CURVE_ORDER
        coeffs = [int(c) for c in self.coeffs]
        n = len(coeffs)
        if n == 1:
            return Polynomial.zero(), FR(coeffs[0])

        quotient = [0] * (n - 1)
        acc = coeffs[-1]
        for i in range(n - 2, -1, -1):
            quotient[i] = acc
            acc = (coeffs[i] + z * acc) % CURVE_ORDER
        return Polynomial(quotient), FR(acc)

    def __repr__(self):
        terms = []
        for i, c in enumerate(self.coeffs):
            if c == FR(0):
                continue
            if i == 0:
                terms.append(str(int(c)))
            elif i == 1:
                terms.append(f"{int(c)}*x")
            else:
                terms.append(f"{int(c)}*x^{i}")
        return "Poly(" + " + ".join(terms) + ")" if terms else "Poly(0)"

    def __len__(self):
        """계수 개수 반환 (차수 + 1)."""
        return len(self.coeffs)

    @classmethod
    def zero(cls):
        """영 다항식 p(x) = 0."""
        return cls([FR(0)])


# ─────────────────────────────────────────────────────────────────────
# 정수점 보간 (Naive Lagrange)
# ─────────────────────────────────────────────────────────────────────

def _master_coeffs(n):
    """M(x) = ∏_{j=0}^{n-1} (x - j) 의 계수 (정수, mod r)."""
    coeffs = [1]
    for j in range(n):
        # (x - j)를 곱한다
        nxt = [0] * (len(coeffs) + 1)
        for k, c in enumerate(coeffs):
            nxt[k + 1] = (nxt[k + 1] + c) % CURVE_ORDER
            nxt[k] = (nxt[k] - j * c) % CURVE_ORDER
        coeffs = nxt
    return coeffs


def interpolate_range(values):
    """정수점 0..n-1 위의 값으로부터 다항식을 복원한다.

    p(i) = values[i] (0 ≤ i < n) 인 유일한 (n-1)차 이하 다항식.
    값이 0인 점은 기여가 없으므로 건너뛴다 (trace 패딩 구간, 룩업 테이블의
    0 결과 행 등).

    Args:
        values: FR 원소 또는 정수 리스트

    Returns:
        Polynomial: 보간된 다항식 (계수 길이 ≤ n)

    예시:
        >>> p = interpolate_range([0, 1, 4, 9])  # x²
        >>> p.coeffs  # [0, 0, 1]
    """
    n = len(values)
    if n == 0:
        return Polynomial.zero()
    vals = [int(v) % CURVE_ORDER for v in values]
    if not any(vals):
        return Polynomial.zero()

    master = _master_coeffs(n)

    # 팩토리얼 테이블: fact[k] = k! mod r
    fact = [1] * n
    for k in range(1, n):
        fact[k] = fact[k - 1] * k % CURVE_ORDER

    result = [0] * n
    for i, v in enumerate(vals):
        if v == 0:
            continue
        denom = fact[i] * fact[n - 1 - i] % CURVE_ORDER
        if (n - 1 - i) % 2 == 1:
            denom = (-denom) % CURVE_ORDER
        scale = v * pow(denom, CURVE_ORDER - 2, CURVE_ORDER) % CURVE_ORDER

        # q(x) = M(x) / (x - i): 최고차부터 합성 나눗셈
        acc = 0
        for k in range(n, 0, -1):
            acc = (master[k] + i * acc) % CURVE_ORDER
            result[k - 1] = (result[k - 1] + scale * acc) % CURVE_ORDER

    return Polynomial(result)
