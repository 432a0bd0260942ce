"""
Tests for column encoding and the transition sum-check.

Covers:
- Column encoding: padding to a power of two, interpolation hits every row
- Transition defect table (zero for a well-formed trace, non-zero on a pc jump)
- Sum-check prove/verify with a shared transcript
- Tampered round messages and claimed sums are rejected
"""

from zkvm.columns import COLUMN_NAMES, encode_columns, commit_columns, next_power_of_2
from zkvm.field import FR, ec_eq
from zkvm.kzg import commit
from zkvm import sumcheck
from zkvm.sumcheck import SumcheckProof, transition_defects
from zkvm.trace import OpCode, TraceRow
from zkvm.transcript import Transcript


def _run(table):
    proof = sumcheck.prove(table, Transcript(b"sc-test"))
    return proof, sumcheck.verify(proof, Transcript(b"sc-test"))


class TestColumns:
    """trace → 열 다항식."""

    def test_next_power_of_2(self):
        assert [next_power_of_2(n) for n in (0, 1, 2, 3, 4, 5, 17)] == [1, 1, 2, 4, 4, 8, 32]

    def test_padding(self):
        rows = [TraceRow(0, OpCode.PUSH, 1, 0, 1), TraceRow(1, OpCode.PUSH, 2, 0, 2),
                TraceRow.halt(2, result=2)]
        cols = encode_columns(rows)
        assert cols.trace_len == 3
        assert cols.pow2 == 4
        assert all(len(cols.values[name]) == 4 for name in COLUMN_NAMES)
        assert cols.values["pc"][3] == FR(0)

    def test_polys_interpolate_rows(self, and_rows):
        cols = encode_columns(and_rows)
        for i, row in enumerate(and_rows):
            for name, v in zip(COLUMN_NAMES, row.field_values()):
                assert cols.polys[name].evaluate(i) == v

    def test_commit_columns_order(self, and_rows, small_srs):
        cols = encode_columns(and_rows)
        comms = commit_columns(cols, small_srs)
        assert tuple(comms) == COLUMN_NAMES
        assert ec_eq(comms["op"], commit(cols.polys["op"], small_srs))


class TestTransitionDefects:
    """결함 f(i) = (pc[i+1] - pc[i] - 1)(1 - halt[i])."""

    def test_well_formed_trace_all_zero(self, and_rows):
        table = transition_defects(encode_columns(and_rows))
        assert all(v == FR(0) for v in table)

    def test_pc_jump_detected(self):
        rows = [TraceRow(0, OpCode.PUSH, 1, 0, 1), TraceRow(2, OpCode.PUSH, 1, 0, 1),
                TraceRow.halt(3, result=1)]
        table = transition_defects(encode_columns(rows))
        assert table[0] == FR(1)
        assert table[1] == FR(0)

    def test_rows_after_halt_unconstrained(self):
        rows = [TraceRow(0, OpCode.PUSH, 1, 0, 1), TraceRow.halt(1, result=1),
                TraceRow(9, OpCode.PUSH, 1, 0, 1)]
        table = transition_defects(encode_columns(rows))
        assert table[1] == FR(0)

    def test_padding_rows_zero(self):
        rows = [TraceRow(0, OpCode.PUSH, 1, 0, 1), TraceRow(1, OpCode.PUSH, 1, 0, 1),
                TraceRow.halt(2)]
        table = transition_defects(encode_columns(rows))
        assert len(table) == 4
        assert table[2] == FR(0) and table[3] == FR(0)


class TestSumcheck:
    """sum-check 증명/검증."""

    def test_round_count(self):
        proof, (ok, _) = _run([FR(v) for v in range(8)])
        assert ok
        assert len(proof.rounds) == 3
        assert proof.claimed_sum == FR(28)

    def test_zero_table(self):
        proof, (ok, _) = _run([FR(0)] * 4)
        assert ok
        assert proof.claimed_sum == FR(0)

    def test_single_entry_has_no_rounds(self):
        proof, (ok, cur) = _run([FR(5)])
        assert ok
        assert proof.rounds == []
        assert cur == FR(5)

    def test_final_claim_is_fold(self):
        """마지막 축약값은 표를 챌린지로 접은 값과 같다."""
        table = [FR(3), FR(1), FR(4), FR(1)]
        transcript = Transcript(b"sc-test")
        proof = sumcheck.prove(table, transcript)
        ok, cur = sumcheck.verify(proof, Transcript(b"sc-test"))
        assert ok

        replay = Transcript(b"sc-test")
        folded = list(table)
        for g0, slope in proof.rounds:
            r = sumcheck._absorb_round(replay, g0, g0 + slope)
            folded = [folded[k] * (FR(1) - r) + folded[k + 1] * r
                      for k in range(0, len(folded), 2)]
        assert folded == [cur]

    def test_tampered_claim_rejected(self):
        proof, _ = _run([FR(1), FR(2), FR(3), FR(4)])
        bad = SumcheckProof(proof.rounds, proof.claimed_sum + FR(1))
        ok, _ = sumcheck.verify(bad, Transcript(b"sc-test"))
        assert not ok

    def test_tampered_round_rejected(self):
        proof, _ = _run([FR(1), FR(2), FR(3), FR(4)])
        g0, slope = proof.rounds[0]
        bad = SumcheckProof([(g0 + FR(1), slope)] + proof.rounds[1:], proof.claimed_sum)
        ok, _ = sumcheck.verify(bad, Transcript(b"sc-test"))
        assert not ok

    def test_different_transcript_changes_challenges(self):
        table = [FR(1), FR(2), FR(3), FR(4)]
        a = sumcheck.prove(table, Transcript(b"one"))
        b = sumcheck.prove(table, Transcript(b"two"))
        assert a.rounds[0] == b.rounds[0]
        assert a.rounds[1] != b.rounds[1]
