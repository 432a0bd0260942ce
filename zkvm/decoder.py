"""
AArch64 명령 디코더
====================

gdb `x/i $pc` 출력 한 줄을 구조화된 DecodedOp로 바꾸는 순수 함수.

  "=> 0x400080 <_start+8>:\tadd\tx2, x0, x1"
        → DecodedOp(OpCode.ADD, dst=2, lhs=Register(0), rhs=Register(1))

**인식하는 부분집합 (64비트 x 레지스터만)**:
  mov  xd, #imm | xs           → PUSH
  add/adds, sub/subs           → ADD / SUB   (rhs: 레지스터, 시프트 레지스터, 즉시값)
  mul  xd, xn, xm              → MUL
  and/ands                     → AND
  orr                          → OR          (orr xd, xzr, xm 은 mov 별칭 → PUSH)

32비트 w 레지스터 형태는 64비트 wraparound 의미론과 맞지 않으므로
인식하지 않는다. 인식하지 못한 명령은 None이며 trace에서 건너뛴다.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from zkvm.field import U64_MASK
from zkvm.trace import OpCode


@dataclass(frozen=True)
class RawInstruction:
    """디버거에서 읽은 원시 명령 (주소와 역어셈블 텍스트)."""
    address: int
    text: str


@dataclass(frozen=True)
class Register:
    index: int
    shift: Optional[str] = None
    amount: int = 0

    def apply(self, value):
        """시프트 레지스터 피연산자의 실제 값."""
        if self.shift == "lsl":
            return 0 if self.amount >= 64 else (value << self.amount) & U64_MASK
        if self.shift == "lsr":
            return 0 if self.amount >= 64 else value >> self.amount
        if self.shift == "asr":
            amount = min(self.amount, 63)
            signed = value - (1 << 64) if value >> 63 else value
            return (signed >> amount) & U64_MASK
        return value


@dataclass(frozen=True)
class Immediate:
    value: int


Operand = Union[Register, Immediate]


@dataclass(frozen=True)
class DecodedOp:
    opcode: OpCode
    dst: int
    lhs: Optional[Operand]
    rhs: Optional[Operand]


_LINE_RE = re.compile(r":\s+([a-z]+)\s+([^,]+),\s*([^,]+)(?:,\s*(.+))?$")
_REG_RE = re.compile(r"^x(\d+)$")
_SHIFTED_RE = re.compile(r"^x(\d+)\s*,\s*(lsl|lsr|asr)\s*#?(\d+)$")
_ZERO_REGS = ("xzr",)

_MNEMONICS = {
    "add": OpCode.ADD,
    "adds": OpCode.ADD,
    "sub": OpCode.SUB,
    "subs": OpCode.SUB,
    "mul": OpCode.MUL,
    "and": OpCode.AND,
    "ands": OpCode.AND,
    "orr": OpCode.OR,
}


def _reg(token):
    m = _REG_RE.match(token)
    if not m:
        return None
    idx = int(m.group(1))
    return idx if idx <= 30 else None


def _imm(token):
    if not token.startswith("#"):
        return None
    body = token[1:].strip()
    try:
        value = int(body, 0)
    except ValueError:
        return None
    return value & U64_MASK


def _operand(token):
    """레지스터, 시프트 레지스터, 즉시값, 또는 인식 불가(None)."""
    token = token.strip()
    if token in _ZERO_REGS:
        return Immediate(0)
    idx = _reg(token)
    if idx is not None:
        return Register(idx)
    m = _SHIFTED_RE.match(token)
    if m and int(m.group(1)) <= 30:
        return Register(int(m.group(1)), m.group(2), int(m.group(3)))
    value = _imm(token)
    if value is not None:
        return Immediate(value)
    return None


def decode(raw):
    """RawInstruction → DecodedOp 또는 None.

    Args:
        raw: RawInstruction 또는 역어셈블 텍스트 문자열

    Returns:
        DecodedOp | None
    """
    text = raw.text if isinstance(raw, RawInstruction) else raw
    # gdb가 붙이는 주석 제거: "mov x0, #0x5 // #5"
    text = text.split("//")[0].rstrip()
    m = _LINE_RE.search(text)
    if not m:
        return None

    mnemonic = m.group(1)
    dst = _reg(m.group(2).strip())
    if dst is None:
        return None
    lhs = _operand(m.group(3))
    rhs = _operand(m.group(4)) if m.group(4) else None
    if lhs is None or (m.group(4) and rhs is None):
        return None

    if mnemonic == "mov":
        if rhs is not None or isinstance(lhs, Register) and lhs.shift:
            return None
        return DecodedOp(OpCode.PUSH, dst, lhs, None)

    opcode = _MNEMONICS.get(mnemonic)
    if opcode is None or rhs is None:
        return None
    if not isinstance(lhs, Register) or lhs.shift:
        # xzr 첫 피연산자: orr xd, xzr, xm (mov 별칭)
        if opcode == OpCode.OR and lhs == Immediate(0) and isinstance(rhs, Register):
            return DecodedOp(OpCode.PUSH, dst, rhs, None)
        return None

    if opcode == OpCode.OR and rhs == Immediate(0):
        return DecodedOp(OpCode.PUSH, dst, lhs, None)
    if opcode == OpCode.MUL and not (isinstance(rhs, Register) and rhs.shift is None):
        return None
    return DecodedOp(opcode, dst, lhs, rhs)
