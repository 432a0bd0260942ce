"""
zkVM 예외 계층
===============

증명 파이프라인에서 발생하는 오류를 세 부류로 나눈다.

**입력 오류 (MalformedInputError)**:
  읽을 수 없는 파일, 크기/필드 불일치, 구조적으로 잘못된 trace 또는 증명.
  즉시 실패하며 재시도하지 않는다.

**자원 한계 (SRSCapacityError)**:
  다항식 차수가 SRS 용량을 초과한 경우. 커밋먼트를 잘라내면 건전성이
  깨지므로 항상 치명적이다.

**외부 협력자 오류 (TracerError, ProgramError)**:
  디버거 구동 실패, 내장 VM 실행 오류.

암호학적 검증 실패는 예외가 아니라 verifier.VerificationResult 로 보고된다.
"""


class ZKVMError(Exception):
    """zkvm 패키지의 모든 예외의 기반 클래스."""


class MalformedInputError(ZKVMError, ValueError):
    """구조적으로 잘못된 입력 (파일, trace, 증명)."""


class SRSCapacityError(ZKVMError, ValueError):
    """다항식이 SRS 용량을 초과함."""


class TracerError(ZKVMError):
    """외부 디버거(gdb) 구동 중 오류."""


class ProgramError(ZKVMError):
    """내장 스택 VM 실행 중 오류 (스택 언더플로, 알 수 없는 명령 등)."""
