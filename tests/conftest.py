"""Pytest configuration for the Chalk test suite."""

import sys
from pathlib import Path

import pytest

# Add src directory to path so the suite runs from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from chalk.dotnet import find_dotnet  # noqa: E402


def pytest_addoption(parser):
    """Add --no-dotnet to skip tests that build generated C#."""
    parser.addoption(
        "--no-dotnet",
        action="store_true",
        default=False,
        help="Skip apptests even when the .NET SDK is installed",
    )


@pytest.fixture
def dotnet(request) -> str:
    """Path to the dotnet executable; skips the test when unavailable."""
    if request.config.getoption("no_dotnet"):
        pytest.skip("--no-dotnet given")
    path = find_dotnet()
    if not path:
        pytest.skip("dotnet not installed")
    return path
