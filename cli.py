from __future__ import annotations

import argparse
import json
import os
import sys

import uvicorn
from pydantic import ValidationError

from archflow.augment import LoggingNotificationSink
from archflow.config import AnalyzerConfig, load_config
from archflow.pipeline import analyze_repository, generate_diagram, resolve_repository
from archflow.summarize import format_summary


def _config(parser: argparse.ArgumentParser, args: argparse.Namespace) -> AnalyzerConfig:
	try:
		config = load_config(args.config)
	except (OSError, ValidationError) as e:
		parser.error(f"invalid config {args.config}: {e}")
	if getattr(args, "max_depth", None) is not None:
		config.max_depth = args.max_depth
	if getattr(args, "augment", False):
		config.generative_augmentation.enabled = True
	return config


def _root(parser: argparse.ArgumentParser, path: str) -> str:
	root = os.path.abspath(path)
	if not os.path.isdir(root):
		parser.error(f"not a directory: {root}")
	return root


def cmd_analyze(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
	result = analyze_repository(_root(parser, args.path), _config(parser, args))
	if args.summary:
		print(format_summary(result.summary))
		return
	print(json.dumps(result.model_dump(mode="json"), indent=2))


def cmd_diagram(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
	result = generate_diagram(_root(parser, args.path), _config(parser, args), sink=LoggingNotificationSink())
	if args.output:
		with open(args.output, "w", encoding="utf-8") as fh:
			fh.write(result.text)
	else:
		sys.stdout.write(result.text)


def cmd_callgraph(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
	graph = resolve_repository(_root(parser, args.path), _config(parser, args))
	matches = graph.find(args.symbol)
	if not matches:
		parser.error(f"unknown symbol: {args.symbol}")
	report = {}
	for fid in matches:
		reachable = graph.get_reachable_from(fid, args.depth)
		report[fid] = {
			"callers": graph.callers_of(fid),
			"reachable": [
				{"id": rid, "depth": depth, "importance": graph.nodes[rid].importance}
				for rid, depth in reachable.items()
			],
		}
	print(json.dumps(report, indent=2))


def cmd_serve(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
	uvicorn.run("api:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="archflow")
	sub = parser.add_subparsers(dest="cmd", required=True)

	pa = sub.add_parser("analyze", help="Analyze a source tree and print the analysis JSON")
	pa.add_argument("path", help="Path to repository root")
	pa.add_argument("--summary", action="store_true", help="Print a short text summary instead of JSON")
	pa.set_defaults(func=cmd_analyze)

	pd = sub.add_parser("diagram", help="Print the architecture flow diagram (Mermaid)")
	pd.add_argument("path", help="Path to repository root")
	pd.add_argument("--augment", action="store_true", help="Ask the generative service to rewrite the diagram")
	pd.add_argument("--output", "-o", help="Write the diagram to a file instead of stdout")
	pd.set_defaults(func=cmd_diagram)

	pc = sub.add_parser("callgraph", help="Print callers and reachable functions of a symbol")
	pc.add_argument("path", help="Path to repository root")
	pc.add_argument("symbol", help="Function name or id")
	pc.add_argument("--depth", type=int, default=5)
	pc.set_defaults(func=cmd_callgraph)

	for p in (pa, pd, pc):
		p.add_argument("--config", help="JSON configuration file")
		p.add_argument("--max-depth", type=int, default=None, help="Directory recursion limit")

	ps = sub.add_parser("serve", help="Run FastAPI server")
	ps.add_argument("--host", default="127.0.0.1")
	ps.add_argument("--port", type=int, default=8000)
	ps.add_argument("--reload", action="store_true")
	ps.set_defaults(func=cmd_serve)
	return parser


def main(argv=None) -> None:
	parser = build_parser()
	args = parser.parse_args(argv)
	args.func(parser, args)


if __name__ == "__main__":
	main()
