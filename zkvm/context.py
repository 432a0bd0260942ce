"""
Prover / Verifier 컨텍스트
===========================

한 번 준비하면 여러 증명에서 공유하는 읽기 전용 자원을 묶는다.

  ProverContext    = SRS + 룩업 테이블 + 프로토콜 파라미터
  VerifierContext  = SRS + 룩업 테이블 + 프로토콜 파라미터 + 주장값 정책

트랜스크립트는 실행(run)마다 새로 만들어 ProverState / VerifierState가
소유한다. 컨텍스트를 여러 세션이 동시에 써도 트랜스크립트는 공유되지 않는다.
"""

from dataclasses import dataclass, field
from typing import Optional

from zkvm.lookup import LookupTable
from zkvm.session import DEFAULT_BLINDING_DEGREE
from zkvm.srs import SRS


@dataclass(frozen=True)
class ProtocolParams:
    opcode_samples: int = 4
    row_samples: int = 4
    blinding_degree: int = DEFAULT_BLINDING_DEGREE


@dataclass
class ProverContext:
    srs: SRS
    lookup_table: Optional[LookupTable] = None
    params: ProtocolParams = field(default_factory=ProtocolParams)


@dataclass
class VerifierContext:
    srs: SRS
    lookup_table: Optional[LookupTable] = None
    params: ProtocolParams = field(default_factory=ProtocolParams)
    require_zero_sum: bool = True
