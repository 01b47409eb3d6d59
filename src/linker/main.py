"""Make the nodes of a generated dependency diagram clickable.

Usage:
    python -m linker.main --input plugin_dependencies.svg [--output linked.svg]
                          [--mode static|script] [--report report.json]

``static`` rewrites the labels into SVG anchors; ``script`` appends the
browser script that does the same when the diagram is opened.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from linker.config import ConfigError, LinkTemplates, load_templates, templates_from_env
from linker.embed import embed_script
from linker.inject import DiagramError, InjectionResult, inject_links, link_svg, parse_svg
from linker.timing import Timings

logger = logging.getLogger(__name__)

MODES = ("static", "script")


def write_json(path: Path, obj: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def add_template_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--templates", default="", help="JSON file overriding project_url/job_url/sentinel/target")
    parser.add_argument("--project-url", default="", help="Project link template, {name} is the project label")
    parser.add_argument("--job-url", default="", help="Build job link template, {name} is the job label")
    parser.add_argument("--sentinel", default="", help="First label of the legend entry (default: ProjectName)")


def build_templates(args: argparse.Namespace) -> LinkTemplates:
    """Defaults < environment < templates file < command line flags."""
    templates = templates_from_env()
    if args.templates:
        templates = load_templates(Path(args.templates), templates)
    return templates.with_overrides(
        project_url=args.project_url,
        job_url=args.job_url,
        sentinel=args.sentinel,
    )


def link_document(data: bytes, *, mode: str, templates: LinkTemplates) -> tuple[bytes, InjectionResult]:
    """Link an SVG held in memory. Returns the new document and the per-group result."""
    if mode == "static":
        return link_svg(data, templates)
    if mode == "script":
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DiagramError(f"diagram is not UTF-8 encoded: {e}") from e
        # Classify a throwaway copy to report what the browser will link.
        result = inject_links(parse_svg(data), templates)
        return embed_script(text, templates).encode("utf-8"), result
    raise ValueError(f"unknown mode: {mode}")


def process_file(
    input_path: Path,
    output_path: Path,
    *,
    mode: str,
    templates: LinkTemplates,
    timings: Timings,
) -> dict:
    """Link one diagram and write it to ``output_path``. Returns the result summary."""
    with timings.step("read", input_path.name):
        data = input_path.read_bytes()

    with timings.step("link", input_path.name):
        out, result = link_document(data, mode=mode, templates=templates)

    with timings.step("write", input_path.name):
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(out)

    summary = result.as_dict(templates)
    summary["mode"] = mode
    summary["output"] = str(output_path)
    return summary


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Turn diagram node labels into project / build job links")
    parser.add_argument("--input", "-i", required=True, help="Generated SVG diagram")
    parser.add_argument("--output", "-o", default="", help="Output SVG (default: overwrite the input)")
    parser.add_argument("--mode", choices=MODES, default="static", help="static: rewrite labels; script: embed browser script")
    parser.add_argument("--report", default="", help="Write a JSON report to this path")
    parser.add_argument("--verbose", "-v", action="store_true")
    add_template_args(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.verbose)

    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else input_path

    timings = Timings()
    report: dict = {
        "meta": {
            "input": str(input_path),
            "output": str(output_path),
            "mode": args.mode,
            "started_at_unix": time.time(),
        },
        "templates": {},
        "timings": {},
        "result": {},
        "errors": [],
    }

    try:
        templates = build_templates(args)
    except ConfigError as e:
        logger.error("%s", e)
        print(json.dumps({"status": "error", "error": str(e)}, ensure_ascii=False))
        return 2
    report["templates"] = templates.as_dict()

    try:
        report["result"] = process_file(input_path, output_path, mode=args.mode, templates=templates, timings=timings)
    except (DiagramError, OSError) as e:
        logger.error("%s: %s", input_path, e)
        report["errors"].append({"step": "link", "error": str(e)})

    report["timings"].update(timings.as_dict())

    if args.report:
        write_json(Path(args.report), report)

    status = {"status": "ok" if not report["errors"] else "error", "out": str(output_path)}
    if report["result"]:
        status["linked"] = report["result"]["counts"]["transform"]
    print(json.dumps(status, ensure_ascii=False))

    return 0 if not report["errors"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
