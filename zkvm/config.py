"""
설정 (Configuration)
=====================

YAML 파일 하나에서 Prover / 서비스 설정을 읽는다. 파일이 없으면 기본값을 쓴다.

  zkvm.yaml 예시:

    log_level: INFO
    prover:
      srs_seed: 12345
      srs_degree: 1023
      srs_cache: .zkvm/srs.txt
      opcode_samples: 4
      row_samples: 4
      steps: 500
      default_domain: default-domain
      gdb_path: gdb
      gdb_timeout: 10.0
      gdb_entry: main
    service:
      db_path: db.json        # null이면 메모리 DB

Prover와 Verifier는 같은 SRS를 써야 한다. srs_seed와 srs_cache가 양쪽에서
같으면 같은 SRS가 만들어진다.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from zkvm.context import ProtocolParams, ProverContext, VerifierContext
from zkvm.errors import MalformedInputError
from zkvm.lookup import LookupTable, TABLE_SIZE
from zkvm.srs import SRS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("zkvm.yaml")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class ProverConfig:
    srs_seed: Optional[int] = 12345
    srs_degree: int = 1023
    srs_cache: Optional[Path] = field(default_factory=lambda: Path(".zkvm/srs.txt"))
    opcode_samples: int = 4
    row_samples: int = 4
    steps: int = 500
    default_domain: str = "default-domain"
    gdb_path: str = "gdb"
    gdb_timeout: float = 10.0
    gdb_entry: Optional[str] = "main"

    def __post_init__(self):
        if self.srs_cache is not None:
            self.srs_cache = Path(self.srs_cache)
        if self.srs_degree < TABLE_SIZE - 1:
            raise MalformedInputError(
                f"srs_degree는 룩업 테이블을 담을 수 있도록 {TABLE_SIZE - 1} 이상이어야 합니다"
            )

    def params(self):
        return ProtocolParams(
            opcode_samples=self.opcode_samples,
            row_samples=self.row_samples,
        )


@dataclass
class ServiceConfig:
    db_path: Optional[Path] = field(default_factory=lambda: Path("db.json"))

    def __post_init__(self):
        if self.db_path is not None:
            self.db_path = Path(self.db_path)


@dataclass
class ZKVMConfig:
    prover: ProverConfig = field(default_factory=ProverConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    log_level: str = "INFO"

    def load_srs(self):
        p = self.prover
        return SRS.load_or_generate(p.srs_cache, p.srs_degree, p.srs_seed)

    def prover_context(self, srs=None, lookup_table=None):
        srs = srs if srs is not None else self.load_srs()
        table = lookup_table if lookup_table is not None else LookupTable.build()
        return ProverContext(srs, table, self.prover.params())

    def verifier_context(self, srs=None, lookup_table=None):
        srs = srs if srs is not None else self.load_srs()
        table = lookup_table if lookup_table is not None else LookupTable.build()
        return VerifierContext(srs, table, self.prover.params())


def load_config(config_path=None):
    """설정 파일을 읽는다. 파일이 없으면 기본 설정을 반환한다.

    Raises:
        MalformedInputError: 파일이 YAML로 읽히지 않거나 알 수 없는 키가 있을 때
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return ZKVMConfig()

    try:
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise MalformedInputError(f"설정 파일 {config_path}를 읽을 수 없습니다: {e}") from e

    if not isinstance(config_data, dict):
        raise MalformedInputError(f"설정 파일 {config_path}의 최상위는 매핑이어야 합니다")

    try:
        return ZKVMConfig(
            prover=ProverConfig(**(config_data.get("prover") or {})),
            service=ServiceConfig(**(config_data.get("service") or {})),
            log_level=config_data.get("log_level", "INFO"),
        )
    except TypeError as e:
        raise MalformedInputError(f"설정 파일 {config_path}: {e}") from e


def setup_logging(log_level="INFO"):
    """루트 로거에 스트림 핸들러 하나를 붙인다."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(level, int):
        raise MalformedInputError(f"알 수 없는 로그 레벨: {log_level!r}")

    logging.basicConfig(level=level, format=LOG_FORMAT)
    return logging.getLogger("zkvm")
