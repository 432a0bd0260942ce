"""
비트 연산 룩업 인자 (Lookup Argument)
======================================

**룩업 테이블 (512행, 프로그램 독립)**:

  ┌──────────────┬─────────┬─────────┬──────────┬────────┐
  │ 행 번호       │ a       │ b       │ result   │ op_tag │
  ├──────────────┼─────────┼─────────┼──────────┼────────┤
  │ a·16 + b     │ 0..15   │ 0..15   │ a & b    │ 4      │
  │ 256 + a·16+b │ 0..15   │ 0..15   │ a | b    │ 5      │
  └──────────────┴─────────┴─────────┴──────────┴────────┘

  네 열을 정수점 0..511 위에서 보간하여 커밋한다. 한 번 만들면 모든
  증명에서 재사용한다 (읽기 전용).

**열기**:
  trace에서 실행된 AND/OR 행마다 Prover는 테이블 행 base + a·16 + b
  (a = x & 0xF, b = y & 0xF)에서 네 열을 모두 연다.
  Verifier는 네 열기를 테이블 커밋먼트로 확인하고
    - 행 번호 == base(op_tag) + a·16 + b
    - result == a <op> b
    - op_tag ∈ {AND, OR}
  를 검사한다. 무작위 배치 검사가 아니라 사용된 행을 하나씩 열거하는 방식이다.

사용 예시:
    >>> table = LookupTable.build()
    >>> comms = table.commitments(srs)
    >>> group = table.open_row(row=3, opcode=OpCode.AND, x=12, y=10, srs=srs)
"""

import logging

from zkvm.field import FR
from zkvm.kzg import Opening, commit
from zkvm.polynomial import interpolate_range
from zkvm.trace import OpCode, BITWISE_OPCODES

logger = logging.getLogger(__name__)

TABLE_SIZE = 512
AND_BASE = 0
OR_BASE = 256

LOOKUP_COLUMNS = ("a", "b", "result", "op_tag")


def table_base(opcode):
    if opcode == OpCode.AND:
        return AND_BASE
    if opcode == OpCode.OR:
        return OR_BASE
    raise ValueError(f"룩업 대상이 아닌 opcode: {opcode}")


def table_index(opcode, x, y):
    """trace 행의 피연산자가 대응되는 테이블 행 번호."""
    return table_base(opcode) + (x & 0xF) * 16 + (y & 0xF)


def table_rows():
    """(a, b, result, op_tag) 512행을 만든다."""
    rows = []
    for opcode in (OpCode.AND, OpCode.OR):
        for a in range(16):
            for b in range(16):
                result = a & b if opcode == OpCode.AND else a | b
                rows.append((a, b, result, int(opcode)))
    return rows


class LookupOpening:
    """비트 연산 행 하나에 대한 테이블 열기 묶음 (열기 4개).

    속성:
        row: 이 묶음이 대응하는 trace 행 번호
        index: 테이블 행 번호
        openings: 열 이름 → Opening (a, b, result, op_tag)
    """

    def __init__(self, row, index, openings):
        self.row = row
        self.index = index
        self.openings = openings

    def value(self, name):
        return self.openings[name].value


class LookupTable:
    """고정 룩업 테이블: 열 값, 보간 다항식, SRS별 커밋먼트 캐시."""

    def __init__(self, values, polys):
        self.values = values
        self.polys = polys
        self._commitments = {}

    @classmethod
    def build(cls):
        rows = table_rows()
        values = {
            name: [FR(row[k]) for row in rows]
            for k, name in enumerate(LOOKUP_COLUMNS)
        }
        polys = {name: interpolate_range(values[name]) for name in LOOKUP_COLUMNS}
        logger.info("Built %d-row AND/OR lookup table", len(rows))
        return cls(values, polys)

    def commitments(self, srs):
        """테이블 커밋먼트 (SRS 객체마다 한 번만 계산)."""
        key = id(srs)
        cached = self._commitments.get(key)
        if cached is None or cached[0] is not srs:
            logger.info("Committing lookup table columns")
            comms = {name: commit(self.polys[name], srs) for name in LOOKUP_COLUMNS}
            cached = (srs, comms)
            self._commitments[key] = cached
        return cached[1]

    def open_row(self, row, opcode, x, y, srs):
        """trace 행 row (opcode, x, y)에 대한 테이블 열기 묶음을 만든다."""
        index = table_index(opcode, x, y)
        openings = {
            name: Opening.create(self.polys[name], index, srs)
            for name in LOOKUP_COLUMNS
        }
        return LookupOpening(row, index, openings)


def build_lookup_openings(rows, table, srs):
    """trace의 모든 AND/OR 행에 대해 열기 묶음을 만든다."""
    groups = []
    for i, row in enumerate(rows):
        if row.opcode in BITWISE_OPCODES:
            groups.append(table.open_row(i, row.opcode, row.operand_x, row.operand_y, srs))
    return groups
