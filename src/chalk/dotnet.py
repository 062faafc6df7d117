"""Build and run generated C# with the .NET SDK."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_FRAMEWORK = "net8.0"

CSPROJ_TEMPLATE = """<Project Sdk="Microsoft.NET.Sdk">

  <PropertyGroup>
    <OutputType>Exe</OutputType>
    <TargetFramework>{framework}</TargetFramework>
    <ImplicitUsings>enable</ImplicitUsings>
    <Nullable>enable</Nullable>
    <EnableDefaultCompileItems>false</EnableDefaultCompileItems>
  </PropertyGroup>

  <ItemGroup>
    <Compile Include="Program.cs" />
  </ItemGroup>

</Project>
"""


class DotnetError(Exception):
    """The .NET SDK is missing or a build step failed."""

    def __init__(self, msg: str, output: str = ""):
        self.msg: str = msg
        self.output: str = output
        super().__init__(msg if not output else msg + "\n" + output)


def find_dotnet() -> str | None:
    """Locate the dotnet executable: $DOTNET first, then PATH."""
    return os.environ.get("DOTNET") or shutil.which("dotnet")


@dataclass
class DotnetConfig:
    dotnet: str | None = field(default_factory=find_dotnet)
    framework: str = field(
        default_factory=lambda: os.environ.get("CHALK_TARGET_FRAMEWORK", DEFAULT_FRAMEWORK)
    )
    project_name: str = "ChalkProgram"


def write_project(directory: str, csharp_source: str, config: DotnetConfig | None = None) -> str:
    """Write Program.cs and a project file into `directory`. Returns the project path."""
    config = config or DotnetConfig()
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, "Program.cs"), "w", encoding="utf-8") as f:
        f.write(csharp_source)
    project_path = os.path.join(directory, config.project_name + ".csproj")
    with open(project_path, "w", encoding="utf-8") as f:
        f.write(CSPROJ_TEMPLATE.format(framework=config.framework))
    logger.debug("wrote project %s", project_path)
    return project_path


def build(directory: str, config: DotnetConfig) -> str:
    """Run `dotnet build` in `directory`. Returns the path of the built assembly."""
    if not config.dotnet:
        raise DotnetError("dotnet executable not found; install the .NET SDK or set DOTNET")
    out_dir = os.path.join(directory, "bin")
    cmd = [
        config.dotnet,
        "build",
        os.path.join(directory, config.project_name + ".csproj"),
        "--nologo",
        "-v",
        "quiet",
        "-o",
        out_dir,
    ]
    logger.info("building: %s", " ".join(cmd))
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise DotnetError("dotnet build failed", (result.stdout + result.stderr).strip())
    return os.path.join(out_dir, config.project_name + ".dll")


def build_and_run(
    csharp_source: str,
    config: DotnetConfig | None = None,
    stdin: str | None = None,
    capture: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Scaffold a throwaway project, build it, and execute the program.

    With `capture=False` the program talks to the caller's terminal and
    `stdin` is ignored.
    """
    config = config or DotnetConfig()
    with tempfile.TemporaryDirectory(prefix="chalk-") as directory:
        write_project(directory, csharp_source, config)
        assembly = build(directory, config)
        cmd = [str(config.dotnet), "exec", assembly]
        logger.info("running: %s", " ".join(cmd))
        if capture:
            return subprocess.run(cmd, input=stdin, capture_output=True, text=True)
        return subprocess.run(cmd, text=True)
