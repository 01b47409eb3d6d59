#!/usr/bin/env python3
"""Link a batch of generated diagrams into one output directory."""
import argparse
import json
import logging
import shutil
import time
from pathlib import Path

from linker.config import ConfigError
from linker.inject import DiagramError
from linker.main import MODES, add_template_args, build_templates, configure_logging, process_file, write_json
from linker.render_report import write_html_report
from linker.timing import Timings

logger = logging.getLogger(__name__)


def collect_inputs(paths: list[str]) -> list[Path]:
    """Expand directories to their ``*.svg`` files (non-recursive), keep order, drop duplicates."""
    out: list[Path] = []
    seen: set[Path] = set()
    for raw in paths:
        p = Path(raw)
        candidates = sorted(p.glob("*.svg")) if p.is_dir() else [p]
        for c in candidates:
            key = c.resolve()
            if key in seen:
                continue
            seen.add(key)
            out.append(c)
    return out


def overlapping_inputs(out_dir: Path, inputs: list[str], collected: list[Path]) -> list[Path]:
    """Inputs that wiping ``out_dir`` would destroy: ``out_dir`` itself or anything below it."""
    hits: list[Path] = []
    for p in [Path(raw) for raw in inputs] + collected:
        resolved = p.resolve()
        if resolved == out_dir or out_dir in resolved.parents:
            if p not in hits:
                hits.append(p)
    return hits


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Link every diagram of a batch and collect the reports.")
    parser.add_argument("inputs", nargs="+", help="SVG files or directories containing SVG files")
    parser.add_argument("--out-dir", default="out/latest", help="Output directory (wiped before the run)")
    parser.add_argument("--mode", choices=MODES, default="static", help="Link mode")
    parser.add_argument("--render-html", action="store_true", help="Also write report.html for the batch")
    parser.add_argument("--verbose", "-v", action="store_true")
    add_template_args(parser)
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    out_dir = Path(args.out_dir).resolve()
    inputs = collect_inputs(args.inputs)

    combined: dict = {
        "meta": {
            "started_at_unix": time.time(),
            "inputs": list(args.inputs),
            "out_dir": str(out_dir),
            "mode": args.mode,
        },
        "templates": {},
        "diagrams": [],
        "timings": {},
        "errors": [],
    }

    clash = overlapping_inputs(out_dir, args.inputs, inputs)
    if clash:
        # Nothing is written: the output directory holds the inputs.
        for p in clash:
            combined["errors"].append({"step": "out_dir", "input": str(p), "error": f"inside output directory {out_dir}"})
        print("Errors:")
        for err in combined["errors"]:
            print(f"- {err['input']}: {err['error']}")
        return 2

    if out_dir.exists():
        shutil.rmtree(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    try:
        templates = build_templates(args)
    except ConfigError as e:
        combined["errors"].append({"step": "templates", "error": str(e)})
        write_json(out_dir / "combined.json", combined)
        print(f"Errors:\n- templates: {e}")
        return 2
    combined["templates"] = templates.as_dict()

    batch_timings = Timings()
    names: set[str] = set()
    for input_path in inputs:
        if input_path.name in names:
            combined["errors"].append({"step": "collect", "input": str(input_path), "error": f"duplicate file name {input_path.name}"})
            continue
        names.add(input_path.name)

        timings = Timings()
        output_path = out_dir / input_path.name
        diagram: dict = {
            "meta": {"input": str(input_path), "output": str(output_path), "mode": args.mode},
            "result": {},
            "timings": {},
            "errors": [],
        }
        try:
            diagram["result"] = process_file(
                input_path, output_path, mode=args.mode, templates=templates, timings=timings,
            )
        except (DiagramError, OSError) as e:
            logger.error("%s: %s", input_path, e)
            diagram["errors"].append({"step": "link", "error": str(e)})
            combined["errors"].append({"step": "link", "input": str(input_path), "error": str(e)})
        diagram["timings"] = timings.as_dict()
        batch_timings.absorb(timings)
        write_json(out_dir / f"{input_path.stem}.report.json", diagram)
        combined["diagrams"].append(diagram)

    combined["timings"] = batch_timings.as_dict()
    write_json(out_dir / "combined.json", combined)

    if args.render_html:
        write_html_report(out_dir / "combined.json", out_dir / "report.html")

    print(f"Wrote: {out_dir}/combined.json")
    if not combined["diagrams"]:
        print("No diagrams found.")
    if combined["errors"]:
        print("Errors:")
        for err in combined["errors"]:
            print(f"- {err.get('input', err.get('step'))}: {err.get('error')}")
        return 3
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
