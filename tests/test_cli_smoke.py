import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "contamcheck", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "contamcheck" in cp.stdout.lower()
    assert "check" in cp.stdout
