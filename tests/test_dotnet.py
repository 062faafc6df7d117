"""Tests for .NET project scaffolding; the SDK itself is stubbed out."""

import subprocess
from pathlib import Path

import pytest

from chalk import dotnet
from chalk.dotnet import DotnetConfig, DotnetError, build_and_run, find_dotnet, write_project


class FakeRun:
    """Records subprocess.run calls and replays canned results."""

    def __init__(self, *results: subprocess.CompletedProcess):
        self.results = list(results)
        self.calls: list[tuple[list[str], dict]] = []
        self.seen_files: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if cmd[1] == "build":
            self.seen_files.append(sorted(p.name for p in Path(cmd[2]).parent.iterdir()))
        return self.results.pop(0)


def test_write_project(tmp_path: Path):
    config = DotnetConfig(dotnet="dotnet", framework="net6.0", project_name="Demo")
    project = write_project(str(tmp_path), "class X {}", config)
    assert project == str(tmp_path / "Demo.csproj")
    assert (tmp_path / "Program.cs").read_text() == "class X {}"
    csproj = (tmp_path / "Demo.csproj").read_text()
    assert "<TargetFramework>net6.0</TargetFramework>" in csproj
    assert "<OutputType>Exe</OutputType>" in csproj
    assert '<Compile Include="Program.cs" />' in csproj
    assert "<EnableDefaultCompileItems>false</EnableDefaultCompileItems>" in csproj


def test_find_dotnet_prefers_env(monkeypatch):
    monkeypatch.setenv("DOTNET", "/opt/dotnet/dotnet")
    assert find_dotnet() == "/opt/dotnet/dotnet"


def test_find_dotnet_falls_back_to_path(monkeypatch):
    monkeypatch.delenv("DOTNET", raising=False)
    monkeypatch.setattr(dotnet.shutil, "which", lambda name: "/usr/bin/" + name)
    assert find_dotnet() == "/usr/bin/dotnet"


def test_framework_from_env(monkeypatch):
    monkeypatch.setenv("CHALK_TARGET_FRAMEWORK", "net9.0")
    assert DotnetConfig(dotnet="dotnet").framework == "net9.0"


def test_build_and_run(monkeypatch):
    fake = FakeRun(
        subprocess.CompletedProcess([], 0, "", ""),
        subprocess.CompletedProcess([], 0, "5\n", ""),
    )
    monkeypatch.setattr(dotnet.subprocess, "run", fake)
    config = DotnetConfig(dotnet="dotnet", framework="net8.0", project_name="P")
    result = build_and_run("// code", config, stdin="2\n")
    assert result.stdout == "5\n"
    build_cmd, _ = fake.calls[0]
    run_cmd, run_kwargs = fake.calls[1]
    assert build_cmd[:2] == ["dotnet", "build"]
    assert build_cmd[2].endswith("P.csproj")
    assert fake.seen_files == [["P.csproj", "Program.cs"]]
    assert run_cmd[:2] == ["dotnet", "exec"]
    assert run_cmd[2].endswith("P.dll")
    assert run_kwargs["input"] == "2\n"


def test_build_failure_raises(monkeypatch):
    fake = FakeRun(subprocess.CompletedProcess([], 1, "error CS1002: ; expected", ""))
    monkeypatch.setattr(dotnet.subprocess, "run", fake)
    with pytest.raises(DotnetError) as exc:
        build_and_run("broken", DotnetConfig(dotnet="dotnet"))
    assert exc.value.msg == "dotnet build failed"
    assert "CS1002" in exc.value.output
    assert len(fake.calls) == 1


def test_missing_sdk_raises():
    with pytest.raises(DotnetError, match="dotnet executable not found"):
        build_and_run("class X {}", DotnetConfig(dotnet=None))
