from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .loaders import read_fasta_ref
from .myers import AlignmentOverflow
from .pipeline import (
    CheckOptions,
    align_references,
    run_check,
    summary_lines,
    write_outputs,
)
from .plotting import plot_class_counts, plot_votes_hist
from .report import render_report
from .toy_data import make_toy_data
from .utils import ensure_outdir, wrap_columns
from .validation import parse_span


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _span(text: str) -> tuple[int, int]:
    try:
        return parse_span(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, AlignmentOverflow):
        sys.stderr.write(
            f"Couldn't align reference and assembly within {err.max_distance} differences "
            "(try a larger --maxd).\n"
        )
        return 1

    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _add_reference_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-r",
        "--reference",
        required=True,
        type=_path_exists,
        help="FASTA with the likely contaminant (may contain ambiguity codes).",
    )
    p.add_argument("--reference-name", default=None, help="Record to use (default: first).")
    p.add_argument("--assembly", required=True, type=_path_exists, help="FASTA with the assembly.")
    p.add_argument("--contig", default=None, help="Assembly record to use (default: first).")
    p.add_argument(
        "-t",
        "--transversions",
        action="store_true",
        help="Only transversions are diagnostic.",
    )
    p.add_argument(
        "-s",
        "--span",
        type=_span,
        default=None,
        metavar="M-N",
        help="Only look at assembly positions M to N (1-based, inclusive).",
    )
    p.add_argument(
        "-d",
        "--maxd",
        type=int,
        default=1000,
        help="Allow up to D differences between reference and assembly.",
    )
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="contamcheck",
        description=(
            "contamcheck: estimate how many fragments assembled into a consensus "
            "look like a known contaminant reference rather than the assembly."
        ),
    )
    p.add_argument("--version", action="version", version=f"contamcheck {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser("quickstart", help="Print ready-to-run recipes.")

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference, assembly and fragment BAM for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # check
    # -----------------
    c = sub.add_parser(
        "check",
        help="Classify fragments as endogenous or contaminant and estimate contamination.",
    )
    _add_reference_args(c)
    c.add_argument(
        "--bam",
        required=True,
        type=_path_exists,
        help="Fragments (BAM/SAM) mapped against the assembly.",
    )
    c.add_argument(
        "-a",
        "--ancient",
        action="store_true",
        help="Treat DNA as ancient (i.e. likely deaminated).",
    )
    c.add_argument(
        "--local-maxd",
        type=int,
        default=None,
        help="Give up realigning a fragment beyond this many differences (default: no limit).",
    )
    c.add_argument("--min-mapq", type=int, default=0, help="Skip fragments below this MAPQ.")
    c.add_argument("--keep-duplicates", action="store_true", help="Do not skip duplicate reads.")
    c.add_argument(
        "--segment-tag",
        default=None,
        help="Aux tag holding the segment role (b/f/a or back/front/whole).",
    )
    c.add_argument(
        "--outdir",
        default=None,
        help="Also write fragments.tsv.gz, summary.json, plots and report.html here.",
    )
    c.add_argument("--summary-only", action="store_true", help="Do not print per-fragment lines.")
    c.add_argument("--no-progress", action="store_true", help="Hide the progress bar.")

    # -----------------
    # diagnostics
    # -----------------
    g = sub.add_parser(
        "diagnostics",
        help="Align reference and assembly and list the diagnostic positions.",
    )
    _add_reference_args(g)
    g.add_argument(
        "--show-alignment",
        action="store_true",
        help="Also print the reference/assembly alignment.",
    )

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "contamcheck quickstart (copy/paste):",
        "",
        "1) Contamination estimate:",
        "   contamcheck check \\",
        "     --reference human_mt.fa \\",
        "     --assembly consensus.fa \\",
        "     --bam fragments.bam",
        "",
        "2) Ancient DNA, transversions only, with an HTML report:",
        "   contamcheck check -a -t \\",
        "     --reference human_mt.fa \\",
        "     --assembly consensus.fa \\",
        "     --bam fragments.bam \\",
        "     --outdir results/",
        "   Outputs: results/report.html, results/fragments.tsv.gz, results/summary.json",
        "",
        "3) Just the diagnostic positions:",
        "   contamcheck diagnostics --reference human_mt.fa --assembly consensus.fa",
        "",
        "Tip: contamcheck make-toy-data --outdir toy/ builds inputs to try these on.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _options(args: argparse.Namespace) -> CheckOptions:
    span_start, span_end = args.span if args.span is not None else (0, None)
    return CheckOptions(
        ancient=bool(getattr(args, "ancient", False)),
        transversions_only=bool(args.transversions),
        span_start=span_start,
        span_end=span_end,
        max_distance=int(args.maxd),
        local_max_distance=getattr(args, "local_maxd", None),
        min_mapq=int(getattr(args, "min_mapq", 0)),
        skip_duplicates=not bool(getattr(args, "keep_duplicates", False)),
        segment_tag=getattr(args, "segment_tag", None),
    )


def cmd_check(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve() if args.outdir else None
    log_path = _log_path(outdir, "check.log") if outdir is not None else None
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("contamcheck")
    logger.info("contamcheck %s", __version__)

    try:
        options = _options(args)
        result = run_check(
            reference_path=args.reference,
            assembly_path=args.assembly,
            bam_path=args.bam,
            options=options,
            reference_name=args.reference_name,
            contig=args.contig,
            progress=not args.no_progress,
        )

        if not args.summary_only:
            for call in result.calls:
                print(f"{call.id} is {call.klass.label} ({call.votes} votes)")
        print("\n".join(summary_lines(result.tally)))

        if outdir is not None:
            summary = write_outputs(result, options, outdir)

            plots_dir = ensure_outdir(outdir / "plots")
            class_counts_png = plots_dir / "class_counts.png"
            votes_png = plots_dir / "votes_hist.png"
            plot_class_counts(class_counts=summary["class_counts"], out_png=class_counts_png)
            plot_votes_hist(votes_hist=summary["votes_hist"], out_png=votes_png)

            report_path = render_report(
                outdir=outdir,
                version=__version__,
                summary=summary,
                bam_path=args.bam,
                plots={
                    "class_counts": str(Path("plots") / class_counts_png.name),
                    "votes_hist": str(Path("plots") / votes_png.name),
                },
            )
            logger.info("Report written: %s", report_path)
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_diagnostics(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose, logfile=None)

    try:
        options = _options(args)
        reference = read_fasta_ref(args.reference, args.reference_name)
        assembly = read_fasta_ref(args.assembly, args.contig)
        aln, index = align_references(reference, assembly, options)

        print(f"{aln.distance} total differences between reference and assembly.")
        print(
            f"{len(index)} diagnostic positions, {index.transversions()} of which are transversions."
        )
        if len(index):
            print(index.describe())

        if args.show_alignment:
            print()
            for ref_row, asm_row in wrap_columns(72, aln.seq_a, aln.seq_b):
                print(ref_row)
                print(asm_row)
                print("".join("*" if x == y else " " for x, y in zip(ref_row, asm_row)))
                print()
        return 0
    except Exception as e:
        return _handle_error(e)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "check":
        return cmd_check(args)
    if args.cmd == "diagnostics":
        return cmd_diagnostics(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
