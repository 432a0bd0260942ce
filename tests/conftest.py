import pytest

from zkvm.context import ProtocolParams, ProverContext, VerifierContext
from zkvm.lookup import LookupTable, TABLE_SIZE
from zkvm.session import SessionBinding, commit_code
from zkvm.srs import SRS
from zkvm.trace import OpCode, TraceRow


# ── 테스트 상수 ──
SRS_SEED = 20240611

# 페어링 수를 줄이기 위한 작은 샘플 수
FAST_PARAMS = ProtocolParams(opcode_samples=2, row_samples=1)

AND_PROGRAM = b"PUSH 12\nPUSH 10\nAND\nHALT\n"


def and_trace():
    """PUSH 12, PUSH 10, AND, HALT (출력 8)."""
    return [
        TraceRow(0, OpCode.PUSH, 12, 0, 12),
        TraceRow(1, OpCode.PUSH, 10, 0, 10),
        TraceRow(2, OpCode.AND, 12, 10, 8),
        TraceRow.halt(3, result=8),
    ]


def add_trace():
    """PUSH 2, PUSH 3, ADD, HALT (출력 5)."""
    return [
        TraceRow(0, OpCode.PUSH, 2, 0, 2),
        TraceRow(1, OpCode.PUSH, 3, 0, 3),
        TraceRow(2, OpCode.ADD, 2, 3, 5),
        TraceRow.halt(3, result=5),
    ]


@pytest.fixture
def and_rows():
    return and_trace()


@pytest.fixture
def add_rows():
    return add_trace()


@pytest.fixture(scope="session")
def srs():
    """룩업 테이블(512행)을 담을 수 있는 최소 SRS."""
    return SRS.generate(max_degree=TABLE_SIZE - 1, seed=SRS_SEED)


@pytest.fixture(scope="session")
def small_srs():
    return SRS.generate(max_degree=16, seed=42)


@pytest.fixture(scope="session")
def lookup_table():
    return LookupTable.build()


@pytest.fixture
def prover_ctx(srs, lookup_table):
    return ProverContext(srs, lookup_table, FAST_PARAMS)


@pytest.fixture
def verifier_ctx(srs, lookup_table):
    return VerifierContext(srs, lookup_table, FAST_PARAMS)


@pytest.fixture(scope="session")
def code_commitment(srs):
    return commit_code(AND_PROGRAM, srs, source_kind="asm")


@pytest.fixture
def binding():
    return SessionBinding.from_tag("test-session")
