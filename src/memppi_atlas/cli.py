"""
memppi-atlas command line.

Usage:
    memppi-atlas serve [--host HOST] [--port PORT]
    memppi-atlas stats
    memppi-atlas validate data/nodes.csv data/edges.csv [--augment-out extra_nodes.csv]
    memppi-atlas render --max-edges 5000 --out positions.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from .config import AtlasSettings
from .dataset import augment_nodes, read_edges_csv, read_nodes_csv, validate_edges, write_csv
from .exceptions import AtlasError
from .filters import network_filters
from .logging import setup_logging
from .render import NetworkXRenderEngine, ProgressiveRenderPipeline
from .retrieval import SliceRetrievalEngine, StatsCollector
from .schema import NODE_FIELDS
from .store import open_store
from .transforms import to_elements


def cmd_serve(args: argparse.Namespace, settings: AtlasSettings) -> int:
    import uvicorn

    from .api import create_app

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_stats(args: argparse.Namespace, settings: AtlasSettings) -> int:
    store = open_store(settings)
    try:
        stats = StatsCollector(
            store,
            batch_size=settings.scan_batch_size,
            batch_min=settings.scan_batch_min,
        ).collect()
    finally:
        store.close()
    print(json.dumps(stats, indent=2))
    return 0


def cmd_validate(args: argparse.Namespace, settings: AtlasSettings) -> int:
    nodes = read_nodes_csv(args.nodes_csv)
    edges = read_edges_csv(args.edges_csv)
    report = validate_edges(nodes, edges)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(f"{'=' * 60}")
        print(f"Edge validation: {args.edges_csv}")
        print(f"{'=' * 60}")
        print(f"Data rows:              {report.data_rows:,}")
        print(f"Unique edge ids:        {report.unique_edges:,}")
        print(f"Duplicate edge ids:     {report.duplicate_edge_count:,}")
        for sample in report.duplicate_samples:
            print(f"  - {sample['edge']} ({sample['protein1']} -> {sample['protein2']})")
        print(f"Rows missing endpoints: {report.invalid_rows:,}")
        print(f"Rows with empty id:     {report.empty_edge_id_count:,}")
        print(f"Edges w/ unknown nodes: {report.missing_protein_count:,}")
        for sample in report.missing_protein_samples:
            missing = [k for k, v in sample["missing"].items() if v]
            print(f"  - {sample['edge']}: missing {', '.join(missing)}")
        print("✓ No problems found" if report.ok else "✗ Problems found")

    if args.augment_out:
        added = augment_nodes(nodes, edges)
        write_csv(args.augment_out, added, NODE_FIELDS)
        print(f"Wrote {len(added):,} minimal node rows to {args.augment_out}", file=sys.stderr)

    return 0 if report.ok else 1


async def _render(elements: list[dict], seed: int | None) -> dict:
    async with ProgressiveRenderPipeline(lambda: NetworkXRenderEngine(seed=seed)) as pipeline:
        await pipeline.load(elements)
        await pipeline.wait_settled()
        return pipeline.engine.snapshot()


def cmd_render(args: argparse.Namespace, settings: AtlasSettings) -> int:
    params = {
        "minProb": args.min_prob,
        "positiveType": args.positive_type,
        "maxEdges": args.max_edges,
        "nodes": args.nodes,
    }
    spec = network_filters({k: v for k, v in params.items() if v is not None})

    store = open_store(settings)
    try:
        result = SliceRetrievalEngine(store, page_size=settings.edge_page_size).fetch_network(spec)
    finally:
        store.close()

    snapshot = asyncio.run(_render(to_elements(result.nodes, result.edges), args.seed))
    snapshot["meta"] = result.meta()

    output = json.dumps(snapshot, indent=2)
    if args.out:
        Path(args.out).write_text(output)
        print(
            f"Rendered {snapshot['nodes']:,} nodes / {snapshot['edges']:,} edges -> {args.out}",
            file=sys.stderr,
        )
    else:
        print(output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memppi-atlas",
        description="Bounded exploration of the MemPPI interaction network",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default: settings)")
    serve.add_argument("--port", type=int, help="Port (default: settings)")
    serve.set_defaults(func=cmd_serve)

    stats = sub.add_parser("stats", help="Print aggregate statistics as JSON")
    stats.set_defaults(func=cmd_stats)

    validate = sub.add_parser("validate", help="Check an edges export against its nodes export")
    validate.add_argument("nodes_csv", type=Path)
    validate.add_argument("edges_csv", type=Path)
    validate.add_argument("--json", action="store_true", help="Output the report as JSON")
    validate.add_argument(
        "--augment-out",
        type=Path,
        help="Write minimal node rows for proteins referenced only by edges",
    )
    validate.set_defaults(func=cmd_validate)

    render = sub.add_parser("render", help="Retrieve a slice and lay it out headlessly")
    render.add_argument("--min-prob", help="Probability threshold for predicted edges")
    render.add_argument("--positive-type", help="experiment,prediction")
    render.add_argument("--max-edges", help="Edge budget")
    render.add_argument("--nodes", help="Comma-separated protein ids to restrict to")
    render.add_argument("--seed", type=int, default=42, help="Layout seed")
    render.add_argument("--out", type=Path, help="Output JSON path (default: stdout)")
    render.set_defaults(func=cmd_render)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = AtlasSettings()
    setup_logging("memppi_atlas.cli", level=settings.log_level)

    try:
        return args.func(args, settings)
    except AtlasError as exc:
        print(f"Error ({exc.kind}): {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
