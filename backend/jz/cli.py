"""
jz command line.

    jz scan <root>
    jz report markdown|json|mermaid <root> [--service NAME] [--output FILE]
    jz flow extract <root> --resource NAME [--method VERB] [--path TEXT] [--max-depth N]
        [--format markdown|json|mermaid|all] [--compact]
    jz flow diff <root-a> <root-b> --resource NAME [...]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .analyzer import analyze, filter_by_service
from .config import settings
from .errors import InputAbsentError
from .flow_differ import diff_flows
from .flow_extractor import extract_flows
from .report import (
    render_flow_diff_markdown, render_flow_markdown, render_flow_mermaid, render_system_markdown,
    render_system_mermaid,
)
from .utils.io import to_json, write_json_atomic, write_text_atomic

logger = logging.getLogger(__name__)


def _emit(payload, fmt: str, render, output: Optional[str]) -> None:
    if output:
        if fmt == "json":
            write_json_atomic(Path(output), payload)
        else:
            write_text_atomic(Path(output), render(payload))
        print(f"Output written to {output}")
        return
    print(to_json(payload) if fmt == "json" else render(payload))


def _cmd_scan(args) -> None:
    print(render_system_markdown(analyze(args.root)))


def _cmd_report(args) -> None:
    result = filter_by_service(analyze(args.root), args.service)
    render = render_system_mermaid if args.kind == "mermaid" else render_system_markdown
    _emit(result, args.kind, render, args.output)


def _extract(root: str, args):
    return extract_flows(analyze(root).services, args.resource, args.method, args.path, args.max_depth)


def _render_flows(flows, args) -> str:
    if args.format == "mermaid":
        return render_flow_mermaid(flows, args.resource, args.compact)
    markdown = render_flow_markdown(flows, args.resource, args.path)
    if args.format == "all":
        return markdown + "\n\n---\n\n" + render_flow_mermaid(flows, args.resource, args.compact)
    return markdown


def _cmd_flow_extract(args) -> None:
    flows = _extract(args.root, args)
    _emit(flows, args.format, lambda f: _render_flows(f, args), args.output)


def _cmd_flow_diff(args) -> None:
    diffs = diff_flows(_extract(args.root_a, args), _extract(args.root_b, args))
    _emit(diffs, args.format, lambda d: render_flow_diff_markdown(d, args.resource), args.output)


def _flow_options(p: argparse.ArgumentParser, formats=("markdown", "json")) -> None:
    p.add_argument("--resource", required=True, help="REST resource class name")
    p.add_argument("--method", help="Filter to a single HTTP method")
    p.add_argument("--path", help="Filter to paths containing this text ('*' for all)")
    p.add_argument("--max-depth", type=int, default=None,
                   help=f"Limit internal call expansion depth (default {settings.FLOW_MAX_DEPTH})")
    p.add_argument("--format", choices=list(formats), default="markdown")
    p.add_argument("--output", help="Write output to file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jz", description="Static analyzer for OSGi / Liberty / JAX-RS code")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a directory and print a Markdown report")
    scan.add_argument("root")
    scan.set_defaults(func=_cmd_scan)

    report = sub.add_parser("report", help="Generate a report")
    report.add_argument("kind", choices=["markdown", "json", "mermaid"])
    report.add_argument("root")
    report.add_argument("--service", help="Filter by service name")
    report.add_argument("--output", help="Write output to file")
    report.set_defaults(func=_cmd_report)

    flow = sub.add_parser("flow", help="Execution flow extraction and comparison")
    flow_sub = flow.add_subparsers(dest="flow_command", required=True)

    extract = flow_sub.add_parser("extract", help="Extract execution flows for a REST resource")
    extract.add_argument("root")
    _flow_options(extract, formats=("markdown", "json", "mermaid", "all"))
    extract.add_argument("--compact", action="store_true",
                         help="Collapse guard/early-return chains in Mermaid diagrams")
    extract.set_defaults(func=_cmd_flow_extract)

    diff = flow_sub.add_parser("diff", help="Compare execution flows between two code versions")
    diff.add_argument("root_a")
    diff.add_argument("root_b")
    _flow_options(diff)
    diff.set_defaults(func=_cmd_flow_diff)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    try:
        args.func(args)
    except InputAbsentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logger.error(f"Cannot write output: {e}")
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
