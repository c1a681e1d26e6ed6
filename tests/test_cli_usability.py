import gzip
import json
import subprocess
import sys
from pathlib import Path

from contamcheck.pipeline import CheckOptions, run_check
from contamcheck.toy_data import make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "contamcheck"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def _ref_args(toy: dict) -> list[str]:
    return ["--reference", toy["reference_fa"], "--assembly", toy["assembly_fa"]]


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "contamcheck check" in cp.stdout
    assert "contamcheck diagnostics" in cp.stdout


def test_make_toy_data_dry_run_does_not_write(tmp_path: Path) -> None:
    outdir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(outdir), "--dry-run"])
    assert cp.returncode == 0
    assert "Would write" in cp.stdout
    assert not outdir.exists()


def test_run_check_on_toy_data(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    result = run_check(
        reference_path=toy["reference_fa"],
        assembly_path=toy["assembly_fa"],
        bam_path=toy["fragments_bam"],
        options=CheckOptions(),
        progress=False,
    )
    assert result.alignment.distance == 3
    assert len(result.index) == 3
    assert result.tally.stats.as_dict() == {
        "nonsensical": 0,
        **toy["expected"],
    }
    assert result.tally.orphans() == []

    est = result.tally.stats.estimate()
    assert est.dirt == 6
    assert est.n == 25


def test_transversions_only_drops_the_transition(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    result = run_check(
        reference_path=toy["reference_fa"],
        assembly_path=toy["assembly_fa"],
        bam_path=toy["fragments_bam"],
        options=CheckOptions(transversions_only=True),
        progress=False,
    )
    assert len(result.index) == 2
    # the eight single reads over the transition no longer vote
    assert result.tally.stats.as_dict()["unclassified"] == 9


def test_make_toy_data_and_check(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0
    toy = json.loads(cp.stdout)

    outdir = tmp_path / "out"
    cp = _run_cli(
        ["check"]
        + _ref_args(toy)
        + ["--bam", toy["fragments_bam"], "--outdir", str(outdir), "--no-progress"]
    )
    assert cp.returncode == 0, cp.stderr
    assert "p_mixed is conflicting (2 votes)" in cp.stdout
    assert "Summary:" in cp.stdout
    assert "polluting    fragments: 6 (" in cp.stdout

    assert (outdir / "report.html").exists()
    assert (outdir / "plots" / "class_counts.png").exists()
    assert (outdir / "logs" / "check.log").exists()

    summary = json.loads((outdir / "summary.json").read_text(encoding="utf-8"))
    for label, n in toy["expected"].items():
        assert summary["class_counts"][label] == n
    assert summary["diagnostic_positions"] == 3
    assert summary["transversions"] == 2

    with gzip.open(outdir / "fragments.tsv.gz", "rt") as fh:
        rows = fh.read().splitlines()
    assert rows[0].split("\t")[0] == "id"
    assert len(rows) == 1 + sum(toy["expected"].values())


def test_overflow_exit_code(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        ["check"] + _ref_args(toy) + ["--bam", toy["fragments_bam"], "--maxd", "2", "--no-progress"]
    )
    assert cp.returncode == 1
    assert "Couldn't align reference and assembly within 2 differences" in cp.stderr


def test_diagnostics_command(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["diagnostics"] + _ref_args(toy) + ["--show-alignment"])
    assert cp.returncode == 0
    assert "3 total differences" in cp.stdout
    assert "3 diagnostic positions, 2 of which are transversions." in cp.stdout
    assert "<60:" in cp.stdout


def test_missing_contig_message(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        ["check"]
        + _ref_args(toy)
        + ["--contig", "chrM", "--bam", toy["fragments_bam"], "--no-progress"]
    )
    assert cp.returncode == 2
    assert "ValueError" in cp.stderr
