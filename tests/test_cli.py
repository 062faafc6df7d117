"""CLI tests: flags, phases, exit codes."""

import io
import subprocess
from pathlib import Path

import pytest

from chalk import cli

HELLO = 'func main(): int { print("hi"); return 0; }\n'


@pytest.fixture
def hello(tmp_path: Path) -> Path:
    path = tmp_path / "hello.chalk"
    path.write_text(HELLO)
    return path


def test_help(capsys):
    assert cli.main(["--help"]) == 0
    assert "chalk [OPTIONS] [FILE]" in capsys.readouterr().out


def test_transpile_to_stdout(hello, capsys):
    assert cli.main([str(hello)]) == 0
    out = capsys.readouterr().out
    assert "public static int Main(string[] args)" in out
    assert 'Console.WriteLine("hi");' in out


def test_transpile_from_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(HELLO))
    assert cli.main([]) == 0
    assert "namespace ChalkProgram" in capsys.readouterr().out


def test_output_file(hello, tmp_path, capsys):
    out_path = tmp_path / "Program.cs"
    assert cli.main([str(hello), "-o", str(out_path)]) == 0
    assert capsys.readouterr().out == ""
    assert "namespace ChalkProgram" in out_path.read_text()


def test_namespace_flag(hello, capsys):
    assert cli.main(["--namespace", "Lab1", str(hello)]) == 0
    assert "namespace Lab1" in capsys.readouterr().out


def test_stop_at_tokens(hello, capsys):
    assert cli.main(["--stop-at", "tokens", str(hello)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "FUNC 'func' 1:1"
    assert lines[-1].startswith("EOF ")


def test_stop_at_parse(hello, capsys):
    assert cli.main(["--stop-at", "parse", str(hello)]) == 0
    assert capsys.readouterr().out == 'func main(): int {\n    print("hi");\n    return 0;\n}\n'


def test_stop_at_check_ok(hello, capsys):
    assert cli.main(["--stop-at", "check", str(hello)]) == 0
    assert capsys.readouterr().out == ""


def test_semantic_error_exit_code(tmp_path, capsys):
    path = tmp_path / "bad.chalk"
    path.write_text("func main(): int { var a: int = 1.5; return a; }")
    assert cli.main(["--stop-at", "check", str(path)]) == 1
    err = capsys.readouterr().err
    assert err.startswith("chalk: semantic error: ")
    assert "int" in err and "float" in err


def test_parse_error_exit_code(tmp_path, capsys):
    path = tmp_path / "bad.chalk"
    path.write_text("func main(): int { return 0 }")
    assert cli.main([str(path)]) == 1
    assert "chalk: parse error: expected ';'" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert cli.main([str(tmp_path / "nope.chalk")]) == 1
    assert "No such file or directory" in capsys.readouterr().err


def test_invalid_utf8(tmp_path, capsys):
    path = tmp_path / "bin.chalk"
    path.write_bytes(b"\xff\xfe")
    assert cli.main([str(path)]) == 1
    assert "invalid utf-8" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv,message",
    [
        (["--bogus"], "unknown flag '--bogus'"),
        (["--stop-at"], "--stop-at requires an argument"),
        (["--stop-at", "emit"], "--stop-at must be one of tokens, parse, check"),
        (["a.chalk", "b.chalk"], "unexpected argument 'b.chalk'"),
        (["--run", "--stop-at", "parse", "a.chalk"], "--run cannot be combined with --stop-at"),
    ],
)
def test_usage_errors(argv, message, capsys):
    assert cli.main(argv) == 2
    assert message in capsys.readouterr().err


def test_run_builds_generated_code(hello, monkeypatch, capsys):
    seen = {}

    def fake_build_and_run(source, capture=True):
        seen["source"] = source
        seen["capture"] = capture
        return subprocess.CompletedProcess([], 3)

    monkeypatch.setattr(cli, "build_and_run", fake_build_and_run)
    assert cli.main(["--run", str(hello)]) == 3
    assert "Console.WriteLine(\"hi\");" in seen["source"]
    assert seen["capture"] is False
    assert capsys.readouterr().out == ""


def test_run_without_sdk(hello, monkeypatch, capsys):
    monkeypatch.delenv("DOTNET", raising=False)
    monkeypatch.setattr("chalk.dotnet.shutil.which", lambda name: None)
    assert cli.main(["--run", str(hello)]) == 1
    assert "dotnet executable not found" in capsys.readouterr().err
