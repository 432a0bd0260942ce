"""
zkVM Structured Reference String (SRS)
========================================

KZG 커밋먼트에 필요한 공개 파라미터를 생성한다.

  SRS = {
      G1 powers: [G1, s·G1, s²·G1, ..., s^d·G1]
      G2 powers: [h, s·h]
  }

**용량(capacity)**:
  G1 powers의 개수 d+1이 커밋 가능한 계수 벡터의 최대 길이이다.
  룩업 테이블(512행)을 커밋하려면 최소 512개가 필요하다.

**보안**:
  s를 아는 사람은 임의의 거짓 열기 증명을 만들 수 있다.
  여기서는 seed에서 결정론적으로 s를 만든다. 실제 배포에는 안전하지 않다.

**캐시 파일**:
  생성 비용을 줄이기 위해 텍스트 파일(n:, g2_1:, g2_tau:, g1_<i>:)로
  저장/로드한다. 포맷은 zkvm.serializers 참고.

사용 예시:
    >>> srs = SRS.generate(max_degree=16, seed=42)
    >>> len(srs)  # 17
"""

import hashlib
import logging
import secrets

from zkvm.field import FR, G1, G2, ec_mul, CURVE_ORDER

logger = logging.getLogger(__name__)


class SRS:
    """Structured Reference String: KZG 커밋먼트용 공개 파라미터.

    속성:
        g1_powers: [G1, s·G1, s²·G1, ..., s^d·G1]
        g2_powers: [h, s·h]
        max_degree: 지원하는 최대 다항식 차수 d
    """

    def __init__(self, g1_powers, g2_powers, max_degree):
        self.g1_powers = g1_powers
        self.g2_powers = g2_powers
        self.max_degree = max_degree

    def __len__(self):
        return len(self.g1_powers)

    @classmethod
    def generate(cls, max_degree, seed=None):
        """SRS를 생성한다.

        Args:
            max_degree: 지원할 최대 다항식 차수 (G1 powers는 max_degree+1개).
            seed: 결정론적 생성을 위한 시드. None이면 무작위 s를 사용한다.

        Returns:
            SRS
        """
        if max_degree < 0:
            raise ValueError(f"max_degree는 0 이상이어야 합니다: {max_degree}")

        if seed is not None:
            h = hashlib.sha256(str(seed).encode()).digest()
            tau_int = int.from_bytes(h, "big") % CURVE_ORDER
        else:
            tau_int = secrets.randbelow(CURVE_ORDER - 1) + 1
        tau = FR(tau_int)

        logger.info("Generating SRS with %d G1 powers", max_degree + 1)
        g1_powers = []
        tau_power = FR(1)
        for _ in range(max_degree + 1):
            g1_powers.append(ec_mul(G1, tau_power))
            tau_power = tau_power * tau

        g2_powers = [G2, ec_mul(G2, tau)]

        return cls(g1_powers, g2_powers, max_degree)

    @classmethod
    def load_or_generate(cls, path, max_degree, seed):
        """캐시 파일에서 SRS를 읽고, 없거나 작으면 새로 생성해 저장한다.

        Args:
            path: 캐시 파일 경로 (pathlib.Path). None이면 캐시하지 않는다.
            max_degree: 필요한 최대 차수
            seed: 생성 시드

        Returns:
            SRS
        """
        from zkvm.serializers import read_srs, write_srs

        if path is not None and path.exists():
            srs = read_srs(path)
            if srs.max_degree >= max_degree:
                logger.info("Loaded SRS from %s (%d powers)", path, len(srs))
                return srs
            logger.info("Cached SRS at %s is too small, regenerating", path)

        srs = cls.generate(max_degree, seed=seed)
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            write_srs(srs, path)
            logger.info("Saved SRS to %s", path)
        return srs
