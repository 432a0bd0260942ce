"""
gdb 기반 실행 trace 수집기
===========================

실행 파일을 gdb/MI로 한 명령씩 실행하며 인식된 명령마다 TraceRow를 만든다.

  ┌──────────┐   x/i $pc, -exec-step-instruction   ┌──────┐
  │GdbTracer │ ──────────────────────────────────→ │ gdb  │
  │          │ ←────────────────────────────────── │ (MI) │
  └──────────┘   ~"..." / ^done / *stopped          └──────┘

**규칙**:
  - 원본 레지스터는 한 스텝 실행 전에, 목적지 레지스터는 실행 후에 읽는다
  - 인식하지 못한 명령(decoder.decode가 None)은 건너뛴다
  - 프로그램이 정상 종료하고 기록된 행이 1개 이상이면 HALT 행을 정확히 하나 붙인다
  - 기록된 행이 없으면 HALT 행 하나만 가진 trace를 돌려준다

모든 gdb 요청은 블로킹 호출이며 명령마다 timeout초 안에 응답이 없으면
TracerError로 중단한다. close()는 언제든 gdb 프로세스를 종료시킨다.

사용 예시:
    >>> with GdbTracer("./program", timeout=10) as tracer:
    ...     rows = tracer.trace(max_steps=500)
"""

import logging
import queue
import re
import subprocess
import threading
import time

from zkvm.decoder import Immediate, RawInstruction, decode
from zkvm.errors import TracerError
from zkvm.field import U64_MASK
from zkvm.trace import TraceRow

logger = logging.getLogger(__name__)

_VALUE_RE = re.compile(r'value="(-?(?:0x[0-9a-fA-F]+|\d+))')
_ADDR_RE = re.compile(r"0x([0-9a-fA-F]+)")
_EXIT_MARKERS = ("exited-normally", "exited-signalled", "exit-code", "exited")


def parse_stream_records(lines):
    """MI 콘솔 스트림 레코드(~"...")를 이어 붙여 일반 텍스트로 만든다."""
    out = []
    for line in lines:
        if line.startswith('~"') and line.endswith('"'):
            body = line[2:-1]
            out.append(body.encode("latin-1", "backslashreplace").decode("unicode_escape"))
    return "".join(out)


def parse_register_value(lines):
    """-data-evaluate-expression 응답에서 64비트 값을 꺼낸다. 실패하면 None."""
    for line in lines:
        if line.startswith("^done"):
            m = _VALUE_RE.search(line)
            if m:
                return int(m.group(1), 0) & U64_MASK
    return None


def is_exit_record(lines):
    return any(
        line.startswith("*stopped") and any(mark in line for mark in _EXIT_MARKERS)
        for line in lines
    )


class GdbTracer:
    """gdb/MI 세션 하나를 감싸는 trace 수집기."""

    def __init__(self, executable, args=(), gdb_path="gdb", timeout=10.0, entry="main"):
        self.executable = str(executable)
        self.args = list(args)
        self.gdb_path = gdb_path
        self.timeout = timeout
        self.entry = entry
        self._proc = None
        self._lines = queue.Queue()

    # ─── 프로세스 수명 ───

    def start(self):
        try:
            self._proc = subprocess.Popen(
                [self.gdb_path, "-q", "--interpreter=mi2"],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise TracerError(f"gdb를 실행할 수 없습니다: {e}") from e

        reader = threading.Thread(target=self._pump, daemon=True)
        reader.start()
        self._read_until_prompt()

        self._command(f'-file-exec-and-symbols "{self.executable}"')
        if self.args:
            self._command("-exec-arguments " + " ".join(self.args))
        self._command("-gdb-set pagination off")
        self._command("-gdb-set breakpoint pending on")
        if self.entry:
            self._command(f"-break-insert -t {self.entry}")
            lines = self._exec("-exec-run")
        else:
            # 심볼 없는 정적 바이너리: 첫 명령에서 멈춘다
            lines = self._exec('-interpreter-exec console "starti"')
        if is_exit_record(lines):
            raise TracerError("main() 이전에 프로그램이 종료되었습니다")
        logger.debug("gdb started for %s", self.executable)
        return self

    def close(self):
        proc, self._proc = self._proc, None
        if proc is None:
            return
        try:
            proc.stdin.write("-gdb-exit\n")
            proc.stdin.flush()
        except (BrokenPipeError, ValueError, OSError) as e:
            logger.debug("gdb already gone: %s", e)
        try:
            proc.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _pump(self):
        for line in self._proc.stdout:
            self._lines.put(line.rstrip("\n"))
        self._lines.put(None)

    # ─── MI 입출력 ───

    def _next_line(self, deadline):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TracerError(f"gdb 응답 시간 초과 ({self.timeout}s)")
        try:
            line = self._lines.get(timeout=remaining)
        except queue.Empty:
            raise TracerError(f"gdb 응답 시간 초과 ({self.timeout}s)") from None
        if line is None:
            raise TracerError("gdb 프로세스가 예기치 않게 종료되었습니다")
        return line

    def _read_until_prompt(self):
        deadline = time.monotonic() + self.timeout
        lines = []
        while True:
            line = self._next_line(deadline)
            if line.startswith("(gdb)"):
                return lines
            lines.append(line)

    def _send(self, cmd):
        if self._proc is None:
            raise TracerError("gdb 세션이 시작되지 않았습니다")
        try:
            self._proc.stdin.write(cmd + "\n")
            self._proc.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            raise TracerError(f"gdb에 쓰기 실패: {e}") from e

    def _command(self, cmd):
        self._send(cmd)
        lines = self._read_until_prompt()
        for line in lines:
            if line.startswith("^error"):
                raise TracerError(f"gdb '{cmd}' 실패: {line}")
        return lines

    def _exec(self, cmd):
        """실행 명령: *stopped 비동기 레코드까지 기다린다."""
        self._send(cmd)
        deadline = time.monotonic() + self.timeout
        lines = []
        while True:
            line = self._next_line(deadline)
            lines.append(line)
            if line.startswith("^error"):
                raise TracerError(f"gdb '{cmd}' 실패: {line}")
            if line.startswith("*stopped"):
                break
        # *stopped 뒤에 오는 프롬프트를 소비한다
        while True:
            line = self._next_line(deadline)
            if line.startswith("(gdb)"):
                break
            lines.append(line)
        return lines

    # ─── 고수준 요청 ───

    def current_instruction(self):
        text = parse_stream_records(
            self._command('-interpreter-exec console "x/i $pc"')
        ).strip()
        m = _ADDR_RE.search(text)
        return RawInstruction(int(m.group(1), 16) if m else 0, text)

    def read_register(self, index):
        value = parse_register_value(
            self._command(f"-data-evaluate-expression $x{index}")
        )
        if value is None:
            raise TracerError(f"레지스터 x{index}를 읽을 수 없습니다")
        return value

    def _operand_value(self, operand):
        if operand is None:
            return 0
        if isinstance(operand, Immediate):
            return operand.value
        return operand.apply(self.read_register(operand.index))

    def step(self):
        """한 명령 실행. 프로그램이 끝났으면 False."""
        return not is_exit_record(self._exec("-exec-step-instruction"))

    def trace(self, max_steps):
        """최대 max_steps 명령을 실행하며 trace를 수집한다.

        Returns:
            list[TraceRow]: 최소 1행
        """
        rows = []
        exited = False
        for _ in range(max_steps):
            decoded = decode(self.current_instruction())
            if decoded is not None:
                x = self._operand_value(decoded.lhs)
                y = self._operand_value(decoded.rhs)
            if not self.step():
                exited = True
                break
            if decoded is None:
                continue
            z = self.read_register(decoded.dst)
            rows.append(TraceRow(len(rows), decoded.opcode, x, y, z))

        if exited and rows:
            rows.append(TraceRow.halt(len(rows), result=rows[-1].result))
        if not rows:
            rows.append(TraceRow.halt(0))
        logger.info("Traced %d rows from %s (exited=%s)", len(rows), self.executable, exited)
        return rows


def trace_executable(path, max_steps, gdb_path="gdb", timeout=10.0, args=(), entry="main"):
    """실행 파일 하나를 trace한다 (세션 열기/닫기 포함)."""
    with GdbTracer(path, args=args, gdb_path=gdb_path, timeout=timeout, entry=entry) as tracer:
        return tracer.trace(max_steps)
