"""
zkvm 명령줄 도구
=================

  zkvm commit <program> [-o OUT]
      프로그램 바이트를 커밋하고 커밋먼트 파일(<stem>.com)을 쓴다.

  zkvm prove <program> [--steps N] [--domain TAG] [--input N]... [-c COM] [-o OUT]
      프로그램을 실행해 trace를 만들고 증명 파일(<stem>.prf)을 쓴다.
      .s / .asm 파일은 내장 스택 VM으로, 그 외는 gdb로 trace한다.

  zkvm verify <commitment-file> <proof-file> [--domain TAG] [--input N]... [--expect N]
      "Verify: ACCEPT" 또는 "Verify: REJECT (<reason>)"를 출력한다.

종료 코드: 0 성공/수락, 1 거부, 2 잘못된 입력 또는 Prover 오류.
"""

import argparse
import logging
import sys
from pathlib import Path

from zkvm.config import load_config, setup_logging
from zkvm.errors import ZKVMError
from zkvm.prover import prove
from zkvm.serializers import (
    read_commitment, write_commitment, read_proof, write_proof,
)
from zkvm.session import SessionBinding, commit_code
from zkvm.tracer import trace_executable
from zkvm.verifier import verify
from zkvm.vm import run_program

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECT = 1
EXIT_ERROR = 2

ASM_SUFFIXES = (".s", ".asm")


def _source_kind(path):
    return "asm" if path.suffix.lower() in ASM_SUFFIXES else "bin"


def _read_program(path):
    try:
        return path.read_bytes()
    except OSError as e:
        raise ZKVMError(f"{path}를 읽을 수 없습니다: {e}") from e


def cmd_commit(args, config):
    program = Path(args.program)
    code = _read_program(program)
    srs = config.load_srs()
    code_commitment = commit_code(code, srs, source_kind=_source_kind(program))

    out = Path(args.output) if args.output else Path(program.stem + ".com")
    write_commitment(code_commitment, out)
    print(f"Commitment written to {out}")
    print(f"  code_sha256 : {code_commitment.code_hash.hex()}")
    print(f"  code_size   : {code_commitment.code_size}")
    return EXIT_OK


def _load_or_commit(program, code, commitment_path, srs):
    """커밋먼트 파일이 있으면 읽어서 프로그램과 대조하고, 없으면 새로 계산한다."""
    fresh = commit_code(code, srs, source_kind=_source_kind(program))
    if commitment_path is None or not commitment_path.exists():
        return fresh
    published = read_commitment(commitment_path)
    if published.code_hash != fresh.code_hash:
        raise ZKVMError(f"{commitment_path}의 code_sha256이 {program}와 다릅니다")
    return published


def cmd_prove(args, config):
    pc = config.prover
    program = Path(args.program)
    code = _read_program(program)
    steps = args.steps if args.steps is not None else pc.steps
    domain = args.domain if args.domain is not None else pc.default_domain
    inputs = args.input or []

    ctx = config.prover_context()
    default_com = Path(program.stem + ".com")
    commitment_path = Path(args.commitment) if args.commitment else default_com
    code_commitment = _load_or_commit(program, code, commitment_path, ctx.srs)

    if _source_kind(program) == "asm":
        rows = run_program(code.decode("utf-8", errors="replace"), inputs, max_steps=steps)
    else:
        rows = trace_executable(
            str(program), steps,
            gdb_path=pc.gdb_path, timeout=pc.gdb_timeout,
            args=[str(v) for v in inputs], entry=pc.gdb_entry,
        )

    binding = SessionBinding.from_tag(domain, inputs)
    proof = prove(code_commitment, binding, rows, ctx)

    out = Path(args.output) if args.output else Path(program.stem + ".prf")
    write_proof(proof, out)
    print(f"Proof written to {out}")
    print(f"  trace_len    : {proof.trace_len}")
    print(f"  final_output : {proof.final_output}")
    return EXIT_OK


def cmd_verify(args, config):
    code_commitment = read_commitment(Path(args.commitment))
    proof = read_proof(Path(args.proof))
    domain = args.domain if args.domain is not None else config.prover.default_domain
    binding = SessionBinding.from_tag(domain, args.input or [], expected_output=args.expect)

    result = verify(code_commitment, binding, proof, config.verifier_context())
    if result.accepted:
        print("Verify: ACCEPT")
        return EXIT_OK
    print(f"Verify: REJECT ({result.reason})")
    return EXIT_REJECT


def build_parser():
    parser = argparse.ArgumentParser(
        prog="zkvm", description="Commit, prove and verify zkVM execution traces")
    parser.add_argument("--config", type=str, default=None,
                        help="YAML config file (default: zkvm.yaml if present)")
    parser.add_argument("--log-level", type=str, default=None,
                        help="Logging level (overrides the config file)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_commit = sub.add_parser("commit", help="Publish a program commitment")
    p_commit.add_argument("program")
    p_commit.add_argument("-o", "--output", default=None)
    p_commit.set_defaults(func=cmd_commit)

    p_prove = sub.add_parser("prove", help="Trace a program and write a proof")
    p_prove.add_argument("program")
    p_prove.add_argument("--steps", type=int, default=None)
    p_prove.add_argument("--domain", type=str, default=None)
    p_prove.add_argument("--input", type=int, action="append")
    p_prove.add_argument("-c", "--commitment", default=None)
    p_prove.add_argument("-o", "--output", default=None)
    p_prove.set_defaults(func=cmd_prove)

    p_verify = sub.add_parser("verify", help="Verify a proof against a commitment")
    p_verify.add_argument("commitment")
    p_verify.add_argument("proof")
    p_verify.add_argument("--domain", type=str, default=None)
    p_verify.add_argument("--input", type=int, action="append")
    p_verify.add_argument("--expect", type=int, default=None)
    p_verify.set_defaults(func=cmd_verify)

    return parser


def run(argv=None):
    """명령을 실행하고 종료 코드를 반환한다."""
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
        setup_logging(args.log_level or config.log_level)
        return args.func(args, config)
    except ZKVMError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
