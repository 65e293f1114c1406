"""Command-line entry point: look up an item and print its documentation."""

from __future__ import annotations

import argparse
import sys
from concurrent.futures import ThreadPoolExecutor

from wtr import fetch, render, workspace
from wtr.fetch import FetchError, VersionSource
from wtr.lookup import ItemNotFoundError, lookup_item

_REEXPORT_NOTE_WORDS = ("// note:", "re-exported", "from")


def parse_query(query: str) -> tuple[str, list[str]]:
    """Split ``crate::path::Item`` into the crate name and the item path."""
    crate_name, *path = query.split("::")
    if not crate_name:
        raise ValueError("invalid query: expected format like `crate::Item`")
    return crate_name, path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wtr", description="Look up Rust crate documentation from docs.rs"
    )
    parser.add_argument(
        "query", help='item path, e.g. "jiff::Timestamp", "serde::Serialize", "tokio::spawn"'
    )
    parser.add_argument("-f", "--full", action="store_true", help="show full documentation")
    parser.add_argument(
        "-m", "--methods", action="store_true", help="list methods (inherent impl methods)"
    )
    parser.add_argument("-t", "--traits", action="store_true", help="show trait implementations")
    parser.add_argument("-a", "--all", action="store_true", help="all of the above")
    parser.add_argument(
        "--no-color", action="store_true", help="disable colors (also respects NO_COLOR env)"
    )
    parser.add_argument("--refresh", action="store_true", help="bypass cache and re-fetch")
    parser.add_argument(
        "--version", default="latest", help='crate version (default: "latest")'
    )
    return parser


def _resolve_version(crate_name: str, requested: str) -> tuple[str, VersionSource]:
    if requested != "latest":
        return requested, VersionSource.EXPLICIT
    inferred = workspace.infer_dep_version(crate_name)
    if inferred is not None:
        return inferred, VersionSource.WORKSPACE
    return "latest", VersionSource.LATEST


def _reexport_note(source: str) -> str:
    return " ".join((*_REEXPORT_NOTE_WORDS, source)) + "\n\n"


def run(args: argparse.Namespace) -> None:
    """Fetch the crate, look up the queried item and print the result."""
    show_full = args.full or args.all
    show_methods = args.methods or args.all
    show_traits = args.traits or args.all

    crate_name, path = parse_query(args.query)
    version, source = _resolve_version(crate_name, args.version)
    is_workspace = source is VersionSource.WORKSPACE

    latest = None
    if is_workspace:
        with ThreadPoolExecutor(max_workers=2) as pool:
            fetched_future = pool.submit(
                fetch.fetch_crate, crate_name, version, args.refresh, source
            )
            latest_future = pool.submit(fetch.check_latest_version, crate_name)
            fetched = fetched_future.result()
            latest = latest_future.result()
    else:
        fetched = fetch.fetch_crate(crate_name, version, args.refresh, source)

    krate = fetched.krate
    result = lookup_item(krate, path)
    item = result.item

    annotation = ""
    if is_workspace:
        if latest is None:
            annotation = " (from workspace)"
        elif latest == fetched.version:
            annotation = " (from workspace, latest)"
        else:
            annotation = f" (from workspace; latest is {latest})"
    body = f"// {crate_name} {fetched.version}{annotation}\n\n"

    if result.reexport_source is not None:
        body += _reexport_note(result.reexport_source)

    body += (
        render.render_item_full(item, krate)
        if show_full
        else render.render_item_summary(item, krate)
    )
    if show_methods:
        body += "\n" + render.render_methods(item, krate)
    if show_traits:
        body += "\n" + render.render_trait_impls(item, krate)

    suggestions = render.render_suggestions(
        crate_name, path, item, show_full, show_methods, show_traits
    )
    render.print_output(body, suggestions, args.no_color)


def main(argv: list[str] | None = None) -> None:
    """Parse the command line and run; exit with status 1 on error."""
    args = _build_parser().parse_args(argv)
    try:
        run(args)
    except (FetchError, ItemNotFoundError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()