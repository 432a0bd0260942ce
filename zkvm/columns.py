"""
열(Column) 인코더
==================

trace 행들을 6개의 열 다항식으로 바꾼다.

  행 i  →  pc[i], op[i], x[i], y[i], z[i], halt[i]

각 열은 pow2 = next_power_of_2(T) 길이로 0을 채운 뒤 정수점 {0..pow2-1}
위에서 보간한다. 따라서 p(i)는 0 ≤ i < T에서 trace 값을, T ≤ i < pow2에서
0을 재현한다.

Verifier는 이 다항식을 재구성하지 않는다. 커밋먼트와 샘플링된 열기 값만 본다.
"""

import logging

from zkvm.field import FR
from zkvm.kzg import commit
from zkvm.polynomial import interpolate_range

logger = logging.getLogger(__name__)

COLUMN_NAMES = ("pc", "op", "x", "y", "z", "halt")


def next_power_of_2(n):
    """n 이상의 가장 작은 2의 거듭제곱을 반환한다.

    예시:
        >>> next_power_of_2(3)  # 4
        >>> next_power_of_2(4)  # 4
    """
    if n <= 1:
        return 1
    p = 1
    while p < n:
        p <<= 1
    return p


class TraceColumns:
    """패딩된 열 값과 보간된 다항식.

    속성:
        trace_len: 실제 행 수 T
        pow2: 패딩된 도메인 크기
        values: 열 이름 → FR 리스트 (길이 pow2)
        polys: 열 이름 → Polynomial
    """

    def __init__(self, trace_len, pow2, values, polys):
        self.trace_len = trace_len
        self.pow2 = pow2
        self.values = values
        self.polys = polys


def encode_columns(rows):
    """trace를 열 다항식으로 인코딩한다.

    Args:
        rows: TraceRow 리스트 (검증된 것)

    Returns:
        TraceColumns
    """
    trace_len = len(rows)
    pow2 = next_power_of_2(trace_len)
    values = {name: [FR(0)] * pow2 for name in COLUMN_NAMES}
    for i, row in enumerate(rows):
        for name, v in zip(COLUMN_NAMES, row.field_values()):
            values[name][i] = v

    polys = {name: interpolate_range(values[name]) for name in COLUMN_NAMES}
    logger.debug("Encoded %d rows into %d-point columns", trace_len, pow2)
    return TraceColumns(trace_len, pow2, values, polys)


def commit_columns(columns, srs):
    """열 다항식마다 KZG 커밋먼트를 만든다 (COLUMN_NAMES 순서 유지)."""
    return {name: commit(columns.polys[name], srs) for name in COLUMN_NAMES}
