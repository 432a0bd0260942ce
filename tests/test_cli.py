"""
Tests for the zkvm command line tool.

Covers:
- commit → prove → verify on a stack VM program
- REJECT output and exit code 1 for a different domain / expected output
- Exit code 2 for malformed files, mismatched commitments, missing programs
- Config loading (defaults, YAML values, bad keys)
"""

import pytest

from zkvm.cli import EXIT_ERROR, EXIT_OK, EXIT_REJECT, run
from zkvm.config import ZKVMConfig, load_config
from zkvm.errors import MalformedInputError
from zkvm.serializers import write_srs

PROGRAM = "PUSH 2\nPUSH 3\nADD\nHALT\n"


@pytest.fixture
def workspace(tmp_path, srs, monkeypatch):
    """SRS 캐시가 미리 채워진 작업 디렉터리와 설정 파일."""
    monkeypatch.chdir(tmp_path)
    cache = tmp_path / "srs.txt"
    write_srs(srs, cache)
    cfg = tmp_path / "zkvm.yaml"
    cfg.write_text(
        "log_level: WARNING\n"
        "prover:\n"
        "  srs_seed: 1\n"
        f"  srs_degree: {srs.max_degree}\n"
        f"  srs_cache: {cache}\n"
        "  opcode_samples: 1\n"
        "  row_samples: 1\n"
        "  default_domain: cli-domain\n"
    )
    prog = tmp_path / "prog.s"
    prog.write_text(PROGRAM)
    return tmp_path, str(cfg), str(prog)


def _commit_and_prove(workspace, domain=None):
    tmp_path, cfg, prog = workspace
    com = str(tmp_path / "prog.com")
    prf = str(tmp_path / "prog.prf")
    assert run(["--config", cfg, "commit", prog, "-o", com]) == EXIT_OK
    args = ["--config", cfg, "prove", prog, "-c", com, "-o", prf]
    if domain is not None:
        args += ["--domain", domain]
    assert run(args) == EXIT_OK
    return cfg, com, prf


class TestCommands:
    """commit / prove / verify."""

    def test_accept(self, workspace, capsys):
        cfg, com, prf = _commit_and_prove(workspace, domain="d1")
        assert run(["--config", cfg, "verify", com, prf, "--domain", "d1"]) == EXIT_OK
        assert "Verify: ACCEPT" in capsys.readouterr().out

    def test_default_domain(self, workspace, capsys):
        cfg, com, prf = _commit_and_prove(workspace)
        assert run(["--config", cfg, "verify", com, prf, "--domain", "cli-domain"]) == EXIT_OK

    def test_expected_output(self, workspace):
        cfg, com, prf = _commit_and_prove(workspace, domain="d1")
        assert run(["--config", cfg, "verify", com, prf, "--domain", "d1", "--expect", "5"]) == EXIT_OK

    def test_reject_other_domain(self, workspace, capsys):
        cfg, com, prf = _commit_and_prove(workspace, domain="d1")
        assert run(["--config", cfg, "verify", com, prf, "--domain", "d2"]) == EXIT_REJECT
        assert "Verify: REJECT (domain-tag-mismatch)" in capsys.readouterr().out

    def test_reject_unexpected_output(self, workspace, capsys):
        cfg, com, prf = _commit_and_prove(workspace, domain="d1")
        code = run(["--config", cfg, "verify", com, prf, "--domain", "d1", "--expect", "6"])
        assert code == EXIT_REJECT
        assert "Verify: REJECT (unexpected-output)" in capsys.readouterr().out

    def test_malformed_proof(self, workspace):
        cfg, com, prf = _commit_and_prove(workspace, domain="d1")
        with open(prf, "a") as f:
            f.write("junk:1\n")
        assert run(["--config", cfg, "verify", com, prf, "--domain", "d1"]) == EXIT_ERROR

    def test_missing_proof_file(self, workspace):
        tmp_path, cfg, prog = workspace
        com = str(tmp_path / "prog.com")
        assert run(["--config", cfg, "commit", prog, "-o", com]) == EXIT_OK
        assert run(["--config", cfg, "verify", com, str(tmp_path / "none.prf")]) == EXIT_ERROR

    def test_commitment_for_other_program(self, workspace):
        tmp_path, cfg, prog = workspace
        other = tmp_path / "other.s"
        other.write_text("PUSH 9\nHALT\n")
        com = str(tmp_path / "other.com")
        assert run(["--config", cfg, "commit", str(other), "-o", com]) == EXIT_OK
        assert run(["--config", cfg, "prove", prog, "-c", com]) == EXIT_ERROR

    def test_default_output_names(self, workspace):
        tmp_path, cfg, prog = workspace
        assert run(["--config", cfg, "commit", prog]) == EXIT_OK
        assert (tmp_path / "prog.com").exists()
        assert run(["--config", cfg, "prove", prog]) == EXIT_OK
        assert (tmp_path / "prog.prf").exists()

    def test_missing_program(self, workspace):
        tmp_path, cfg, _ = workspace
        assert run(["--config", cfg, "commit", str(tmp_path / "nope.s")]) == EXIT_ERROR

    def test_vm_error(self, workspace):
        tmp_path, cfg, _ = workspace
        bad = tmp_path / "bad.s"
        bad.write_text("ADD\n")
        assert run(["--config", cfg, "prove", str(bad)]) == EXIT_ERROR


class TestConfig:
    """YAML 설정."""

    def test_defaults_when_absent(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")
        assert isinstance(config, ZKVMConfig)
        assert config.prover.srs_degree == 1023
        assert config.prover.default_domain == "default-domain"

    def test_values(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("prover:\n  steps: 64\n  srs_cache: a/b.txt\nservice:\n  db_path: x.json\n")
        config = load_config(path)
        assert config.prover.steps == 64
        assert str(config.prover.srs_cache) == "a/b.txt"
        assert config.service.db_path.name == "x.json"

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("prover:\n  no_such_option: 1\n")
        with pytest.raises(MalformedInputError):
            load_config(path)

    def test_degree_too_small_for_lookup_table(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("prover:\n  srs_degree: 16\n")
        with pytest.raises(MalformedInputError):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(MalformedInputError):
            load_config(path)
