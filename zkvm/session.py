"""
세션 바인더 (Session Binder)
=============================

**코드 커밋먼트 (프로그램 버전마다 한 번 공개)**:
  code_hash       = SHA256(프로그램 바이트)
  base_commitment = commit(code_poly)
  code_poly의 계수는 프로그램 바이트를 31바이트씩 빅엔디안으로 묶은 값이다
  (31바이트 정수는 항상 스칼라 필드 위수보다 작다).

**세션 커밋먼트 (검증마다 새로 계산)**:

  session_commitment = base_commitment + commit(blind(domain_tag))

  blind(tag)의 i번째 계수 = SHA256("code-blind" ‖ tag ‖ i)의 앞 8바이트.
  도메인 태그는 Verifier가 검증마다 새로 고르므로, 이전에 통과한 증명을
  다른 태그로 다시 제출하면 세션 커밋먼트가 달라져 거부된다.

사용 예시:
    >>> code = commit_code(b"PUSH 1\\nHALT\\n", srs, source_kind="asm")
    >>> binding = SessionBinding.from_tag("session-42")
    >>> C_sess = session_commitment(code.base_commitment, binding.domain_tag, srs)
"""

import hashlib

from zkvm.field import FR, ec_add
from zkvm.kzg import commit
from zkvm.polynomial import Polynomial

CODE_CHUNK_BYTES = 31

BLIND_LABEL = b"code-blind"

DEFAULT_BLINDING_DEGREE = 8


class CodeCommitment:
    """공개된 프로그램 커밋먼트.

    속성:
        code_hash: 32바이트 SHA-256
        base_commitment: G1 점
        source_kind: "asm" (내장 VM 어셈블리) 또는 "bin" (실행 파일)
        code_size: 프로그램 바이트 수
    """

    def __init__(self, code_hash, base_commitment, source_kind="bin", code_size=0):
        self.code_hash = code_hash
        self.base_commitment = base_commitment
        self.source_kind = source_kind
        self.code_size = code_size


class SessionBinding:
    """검증 세션 하나의 공개 파라미터.

    속성:
        domain_tag: 32바이트, Verifier가 세션마다 새로 고름
        input_hash: 32바이트, 공개 입력의 해시
        expected_output: 지정되면 증명의 final_output이 이 값이어야 함
    """

    def __init__(self, domain_tag, input_hash, expected_output=None):
        if len(domain_tag) != 32 or len(input_hash) != 32:
            raise ValueError("domain_tag와 input_hash는 32바이트여야 합니다")
        self.domain_tag = bytes(domain_tag)
        self.input_hash = bytes(input_hash)
        self.expected_output = expected_output

    @classmethod
    def from_tag(cls, tag, inputs=(), expected_output=None):
        """사람이 읽는 태그 문자열에서 바인딩을 만든다 (태그는 SHA-256으로 줄임)."""
        if isinstance(tag, str):
            tag = tag.encode()
        return cls(hashlib.sha256(tag).digest(), hash_inputs(inputs), expected_output)


def hash_inputs(inputs):
    """공개 입력 정수들의 해시: SHA256(각 값의 8바이트 빅엔디안 연결)."""
    data = b"".join((int(v) & ((1 << 64) - 1)).to_bytes(8, "big") for v in inputs)
    return hashlib.sha256(data).digest()


def code_polynomial(code):
    coeffs = [
        FR(int.from_bytes(code[i:i + CODE_CHUNK_BYTES], "big"))
        for i in range(0, len(code), CODE_CHUNK_BYTES)
    ]
    return Polynomial(coeffs)


def commit_code(code, srs, source_kind="bin"):
    """프로그램 바이트를 커밋한다."""
    code = bytes(code)
    return CodeCommitment(
        hashlib.sha256(code).digest(),
        commit(code_polynomial(code), srs),
        source_kind,
        len(code),
    )


def blinding_polynomial(domain_tag, degree=DEFAULT_BLINDING_DEGREE):
    """도메인 태그에서 결정론적으로 유도한 degree차 블라인딩 다항식."""
    coeffs = []
    for i in range(degree + 1):
        h = hashlib.sha256(BLIND_LABEL + bytes(domain_tag) + bytes([i & 0xFF])).digest()
        coeffs.append(FR(int.from_bytes(h[:8], "big")))
    return Polynomial(coeffs)


def session_commitment(base_commitment, domain_tag, srs, degree=DEFAULT_BLINDING_DEGREE):
    """base_commitment + commit(blind(domain_tag))."""
    return ec_add(base_commitment, commit(blinding_polynomial(domain_tag, degree), srs))
