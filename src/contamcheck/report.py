from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>contamcheck report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>contamcheck report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Reference</th><td><code>{{ reference }}</code></td></tr>
      <tr><th>Assembly</th><td><code>{{ assembly }}</code></td></tr>
      <tr><th>Fragments</th><td><code>{{ bam_path }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Options</h3>
    <table>
      <tr><th>Ancient DNA</th><td>{{ options.ancient }}</td></tr>
      <tr><th>Transversions only</th><td>{{ options.transversions_only }}</td></tr>
      <tr><th>Span</th><td>{{ options.span_start }} .. {{ options.span_end if options.span_end is not none else "end" }}</td></tr>
      <tr><th>Max. differences</th><td>{{ options.max_distance }}</td></tr>
    </table>
  </div>
</div>

<h2>Reference vs assembly</h2>
<table>
  <tr><th>Differences</th><td>{{ differences }}</td></tr>
  <tr><th>Diagnostic positions</th><td>{{ diagnostic_positions }}</td></tr>
  <tr><th>of which transversions</th><td>{{ transversions }}</td></tr>
</table>

<h2>Fragments</h2>
<table>
  {% for label, count in class_counts.items() %}
  <tr><th>{{ label }}</th><td>{{ count }}</td></tr>
  {% endfor %}
  <tr><th>Fronts missing their back</th><td>{{ anomalies.front_without_back }}</td></tr>
  <tr><th>Backs missing their front</th><td>{{ anomalies.orphan_backs }}</td></tr>
  <tr><th>Unknown segment role</th><td>{{ anomalies.unknown_segment }}</td></tr>
  <tr><th>Failed realignments</th><td>{{ anomalies.local_overflow }}</td></tr>
</table>

<h2>Contamination estimate</h2>
{% if estimate %}
<p>{{ "%.1f"|format(estimate.estimate) }}% polluting fragments
   (95% CI {{ "%.1f"|format(estimate.lower) }} .. {{ "%.1f"|format(estimate.upper) }}%,
   {{ estimate.dirt }} of {{ estimate.n }} informative fragments)</p>
{% else %}
<p>n/a (no fragment was classified clean or polluting)</p>
{% endif %}

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Classifications</h3>
    <img src="{{ plots.class_counts }}" alt="class counts">
  </div>
  <div class="card">
    <h3>Votes per fragment</h3>
    <img src="{{ plots.votes_hist }}" alt="votes histogram">
  </div>
</div>

<h2>Outputs</h2>
<ul>
  <li><code>fragments.tsv.gz</code> (per-fragment classifications)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>Fragments not overlapping a diagnostic position stay unclassified.</li>
  <li>The estimate counts polluting among clean + polluting fragments only;
      conflicting and nonsensical fragments are left out.</li>
</ul>

<hr>
<p class="small">contamcheck {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    summary: Dict[str, Any],
    bam_path: str,
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        reference=summary.get("reference"),
        assembly=summary.get("assembly"),
        bam_path=bam_path,
        options=summary.get("options", {}),
        differences=summary.get("differences"),
        diagnostic_positions=summary.get("diagnostic_positions"),
        transversions=summary.get("transversions"),
        class_counts=summary.get("class_counts", {}),
        anomalies=summary.get("anomalies", {}),
        estimate=summary.get("estimate"),
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    return out_path
