"""
커밋먼트 / 증명 / SRS 파일 직렬화
===================================

한 줄에 key:value 하나씩 쓰는 텍스트 포맷이다. 키의 순서는 고정되어 있으며
읽을 때도 정확히 같은 순서를 요구한다. 따라서 쓰기 → 읽기 → 쓰기가
바이트 단위로 같고, Verifier는 Prover와 같은 트랜스크립트를 재구성한다.

**값 인코딩**:
  정수       10진수 (부호 없음)
  해시       64자리 hex (32바이트)
  FR         64자리 hex (빅엔디안, < r)
  G1         128자리 hex (아핀 x ‖ y, 무한원점은 전부 0)
  G2         256자리 hex (x0 ‖ x1 ‖ y0 ‖ y1)
  Opening    "<index> <FR> <G1>"

**증명 파일 예시** (일부):

    version:1
    code_sha256:9f86d0...
    trace_len:2
    comm.pc:0000...
    sumcheck.rounds:1
    round.0.g0:0000...
    opcode.count:4
    opcode.0:1 0000...01 2a1b...

읽기 실패(파일 없음, 키 순서/개수 불일치, 잘못된 hex, 범위 밖 값)는 모두
MalformedInputError이다.
"""

from zkvm.columns import COLUMN_NAMES
from zkvm.errors import MalformedInputError
from zkvm.field import (
    FR, CURVE_ORDER, FIELD_MODULUS,
    g1_to_affine, g1_from_affine, g2_to_affine, g2_from_affine,
    is_on_g1, is_on_g2,
)
from zkvm.kzg import Opening
from zkvm.lookup import LOOKUP_COLUMNS, LookupOpening
from zkvm.prover import Proof, PROOF_VERSION
from zkvm.prover.round3 import RowOpening
from zkvm.session import CodeCommitment
from zkvm.srs import SRS
from zkvm.sumcheck import SumcheckProof

COMMITMENT_VERSION = 1

SOURCE_KINDS = ("asm", "bin")

_ROW_FIELDS = ("pc", "pc_next", "op", "x", "y", "z", "halt")


# ─── 값 인코딩 ───

def _hex_int(s, digits, what):
    if len(s) != digits:
        raise MalformedInputError(f"{what}: {digits}자리 hex가 필요합니다 (길이 {len(s)})")
    try:
        return int(s, 16)
    except ValueError:
        raise MalformedInputError(f"{what}: 잘못된 hex") from None


def encode_uint(n):
    return str(int(n))


def decode_uint(s, what="integer"):
    if not s.isdigit() or not s.isascii():
        raise MalformedInputError(f"{what}: 부호 없는 10진수가 아닙니다: {s!r}")
    return int(s)


def encode_hash(b):
    return bytes(b).hex()


def decode_hash(s, what="hash"):
    return _hex_int(s, 64, what).to_bytes(32, "big")


def encode_fr(v):
    return f"{int(v):064x}"


def decode_fr(s, what="field element"):
    n = _hex_int(s, 64, what)
    if n >= CURVE_ORDER:
        raise MalformedInputError(f"{what}: 스칼라 필드 범위를 벗어났습니다")
    return FR(n)


def encode_g1(point):
    xy = g1_to_affine(point)
    if xy is None:
        return "0" * 128
    return f"{xy[0]:064x}{xy[1]:064x}"


def decode_g1(s, what="G1 point"):
    n = _hex_int(s, 128, what)
    if n == 0:
        return g1_from_affine(None)
    x, y = n >> 256, n & ((1 << 256) - 1)
    if x >= FIELD_MODULUS or y >= FIELD_MODULUS:
        raise MalformedInputError(f"{what}: 좌표가 기저체 범위를 벗어났습니다")
    return g1_from_affine((x, y))


def encode_g2(point):
    (x0, x1), (y0, y1) = g2_to_affine(point)
    return f"{x0:064x}{x1:064x}{y0:064x}{y1:064x}"


def decode_g2(s, what="G2 point"):
    n = _hex_int(s, 256, what)
    mask = (1 << 256) - 1
    parts = [(n >> (256 * k)) & mask for k in (3, 2, 1, 0)]
    if any(p >= FIELD_MODULUS for p in parts):
        raise MalformedInputError(f"{what}: 좌표가 기저체 범위를 벗어났습니다")
    return g2_from_affine(((parts[0], parts[1]), (parts[2], parts[3])))


def encode_opening(opening):
    return f"{opening.index} {encode_fr(opening.value)} {encode_g1(opening.witness)}"


def decode_opening(s, what="opening"):
    parts = s.split(" ")
    if len(parts) != 3:
        raise MalformedInputError(f"{what}: '<index> <value> <witness>' 형식이 아닙니다")
    return Opening(
        decode_uint(parts[0], what),
        decode_fr(parts[1], what),
        decode_g1(parts[2], what),
    )


# ─── key:value 라인 ───

def _format(pairs):
    return "".join(f"{key}:{value}\n" for key, value in pairs)


class _LineReader:
    """고정된 키 순서대로 key:value 라인을 읽는다."""

    def __init__(self, text):
        self.lines = text.split("\n")
        if self.lines and self.lines[-1] == "":
            self.lines.pop()
        self.pos = 0

    def take(self, key):
        if self.pos >= len(self.lines):
            raise MalformedInputError(f"'{key}' 키가 필요하지만 파일이 끝났습니다")
        line = self.lines[self.pos]
        name, sep, value = line.partition(":")
        if not sep or name != key:
            raise MalformedInputError(f"line {self.pos + 1}: '{key}' 키가 필요합니다: {line!r}")
        self.pos += 1
        return value

    def finish(self):
        if self.pos != len(self.lines):
            raise MalformedInputError(f"line {self.pos + 1}: 예상하지 못한 내용이 남아 있습니다")


def _read_text(path):
    try:
        with open(path, "r", encoding="ascii", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedInputError(f"{path}를 읽을 수 없습니다: {e}") from e


def _write_text(path, text):
    with open(path, "w", encoding="ascii", newline="") as f:
        f.write(text)


# ─── 커밋먼트 파일 ───

def commitment_to_text(code_commitment):
    return _format([
        ("version", COMMITMENT_VERSION),
        ("source_kind", code_commitment.source_kind),
        ("code_size", encode_uint(code_commitment.code_size)),
        ("code_sha256", encode_hash(code_commitment.code_hash)),
        ("code_commitment", encode_g1(code_commitment.base_commitment)),
    ])


def commitment_from_text(text):
    r = _LineReader(text)
    version = decode_uint(r.take("version"), "version")
    if version != COMMITMENT_VERSION:
        raise MalformedInputError(f"지원하지 않는 커밋먼트 버전: {version}")
    source_kind = r.take("source_kind")
    if source_kind not in SOURCE_KINDS:
        raise MalformedInputError(f"알 수 없는 source_kind: {source_kind!r}")
    code_size = decode_uint(r.take("code_size"), "code_size")
    code_hash = decode_hash(r.take("code_sha256"), "code_sha256")
    base = decode_g1(r.take("code_commitment"), "code_commitment")
    r.finish()
    return CodeCommitment(code_hash, base, source_kind, code_size)


def write_commitment(code_commitment, path):
    _write_text(path, commitment_to_text(code_commitment))


def read_commitment(path):
    return commitment_from_text(_read_text(path))


# ─── 증명 파일 ───

def proof_to_text(proof):
    pairs = [
        ("version", proof.version),
        ("code_sha256", encode_hash(proof.code_sha)),
        ("domain_tag", encode_hash(proof.domain_tag)),
        ("input_hash", encode_hash(proof.input_hash)),
        ("session_commitment", encode_g1(proof.session_commitment)),
        ("trace_len", encode_uint(proof.trace_len)),
        ("trace_pow2", encode_uint(proof.trace_pow2)),
        ("final_output", encode_uint(proof.final_output)),
    ]
    for name in COLUMN_NAMES:
        pairs.append((f"comm.{name}", encode_g1(proof.column_commitments[name])))

    if proof.lookup_commitments is None:
        pairs.append(("lut", "0"))
    else:
        pairs.append(("lut", "1"))
        for name in LOOKUP_COLUMNS:
            pairs.append((f"lut.{name}", encode_g1(proof.lookup_commitments[name])))

    sc = proof.sumcheck
    pairs.append(("sumcheck.claimed_sum", encode_fr(sc.claimed_sum)))
    pairs.append(("sumcheck.rounds", encode_uint(len(sc.rounds))))
    for i, (g0, slope) in enumerate(sc.rounds):
        pairs.append((f"round.{i}.g0", encode_fr(g0)))
        pairs.append((f"round.{i}.slope", encode_fr(slope)))

    pairs.append(("opcode.count", encode_uint(len(proof.opcode_openings))))
    for i, opening in enumerate(proof.opcode_openings):
        pairs.append((f"opcode.{i}", encode_opening(opening)))

    pairs.append(("row.count", encode_uint(len(proof.row_openings))))
    for i, ro in enumerate(proof.row_openings):
        pairs.append((f"row.{i}.index", encode_uint(ro.index)))
        for attr in _ROW_FIELDS:
            pairs.append((f"row.{i}.{attr}", encode_opening(getattr(ro, attr))))

    pairs.append(("output", encode_opening(proof.output_opening)))

    pairs.append(("lookup.count", encode_uint(len(proof.lookup_openings))))
    for i, group in enumerate(proof.lookup_openings):
        pairs.append((f"lookup.{i}.row", encode_uint(group.row)))
        pairs.append((f"lookup.{i}.index", encode_uint(group.index)))
        for name in LOOKUP_COLUMNS:
            pairs.append((f"lookup.{i}.{name}", encode_opening(group.openings[name])))

    return _format(pairs)


def proof_from_text(text):
    r = _LineReader(text)
    proof = Proof()
    version = decode_uint(r.take("version"), "version")
    if version != PROOF_VERSION:
        raise MalformedInputError(f"지원하지 않는 증명 버전: {version}")
    proof.code_sha = decode_hash(r.take("code_sha256"), "code_sha256")
    proof.domain_tag = decode_hash(r.take("domain_tag"), "domain_tag")
    proof.input_hash = decode_hash(r.take("input_hash"), "input_hash")
    proof.session_commitment = decode_g1(r.take("session_commitment"), "session_commitment")
    proof.trace_len = decode_uint(r.take("trace_len"), "trace_len")
    proof.trace_pow2 = decode_uint(r.take("trace_pow2"), "trace_pow2")
    proof.final_output = decode_uint(r.take("final_output"), "final_output")
    proof.column_commitments = {
        name: decode_g1(r.take(f"comm.{name}"), f"comm.{name}") for name in COLUMN_NAMES
    }

    lut = r.take("lut")
    if lut == "1":
        proof.lookup_commitments = {
            name: decode_g1(r.take(f"lut.{name}"), f"lut.{name}") for name in LOOKUP_COLUMNS
        }
    elif lut != "0":
        raise MalformedInputError(f"lut 플래그는 0 또는 1이어야 합니다: {lut!r}")

    claimed_sum = decode_fr(r.take("sumcheck.claimed_sum"), "sumcheck.claimed_sum")
    rounds = []
    for i in range(decode_uint(r.take("sumcheck.rounds"), "sumcheck.rounds")):
        g0 = decode_fr(r.take(f"round.{i}.g0"), f"round.{i}.g0")
        slope = decode_fr(r.take(f"round.{i}.slope"), f"round.{i}.slope")
        rounds.append((g0, slope))
    proof.sumcheck = SumcheckProof(rounds, claimed_sum)

    count = decode_uint(r.take("opcode.count"), "opcode.count")
    proof.opcode_openings = [
        decode_opening(r.take(f"opcode.{i}"), f"opcode.{i}") for i in range(count)
    ]

    proof.row_openings = []
    for i in range(decode_uint(r.take("row.count"), "row.count")):
        index = decode_uint(r.take(f"row.{i}.index"), f"row.{i}.index")
        fields = [decode_opening(r.take(f"row.{i}.{attr}"), f"row.{i}.{attr}") for attr in _ROW_FIELDS]
        proof.row_openings.append(RowOpening(index, *fields))

    proof.output_opening = decode_opening(r.take("output"), "output")

    proof.lookup_openings = []
    for i in range(decode_uint(r.take("lookup.count"), "lookup.count")):
        row = decode_uint(r.take(f"lookup.{i}.row"), f"lookup.{i}.row")
        index = decode_uint(r.take(f"lookup.{i}.index"), f"lookup.{i}.index")
        openings = {
            name: decode_opening(r.take(f"lookup.{i}.{name}"), f"lookup.{i}.{name}")
            for name in LOOKUP_COLUMNS
        }
        proof.lookup_openings.append(LookupOpening(row, index, openings))

    r.finish()
    return proof


def write_proof(proof, path):
    _write_text(path, proof_to_text(proof))


def read_proof(path):
    return proof_from_text(_read_text(path))


# ─── SRS 파일 ───

def srs_to_text(srs):
    pairs = [
        ("n", encode_uint(len(srs.g1_powers))),
        ("g2_1", encode_g2(srs.g2_powers[0])),
        ("g2_tau", encode_g2(srs.g2_powers[1])),
    ]
    for i, point in enumerate(srs.g1_powers):
        pairs.append((f"g1_{i}", encode_g1(point)))
    return _format(pairs)


def srs_from_text(text):
    r = _LineReader(text)
    n = decode_uint(r.take("n"), "n")
    if n == 0:
        raise MalformedInputError("SRS가 비어 있습니다")
    g2_powers = [decode_g2(r.take("g2_1"), "g2_1"), decode_g2(r.take("g2_tau"), "g2_tau")]
    g1_powers = [decode_g1(r.take(f"g1_{i}"), f"g1_{i}") for i in range(n)]
    r.finish()
    if not all(is_on_g2(p) for p in g2_powers) or not all(is_on_g1(p) for p in g1_powers):
        raise MalformedInputError("SRS에 곡선 위에 있지 않은 점이 있습니다")
    return SRS(g1_powers, g2_powers, n - 1)


def write_srs(srs, path):
    _write_text(path, srs_to_text(srs))


def read_srs(path):
    return srs_from_text(_read_text(path))
