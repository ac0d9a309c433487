"""Command-line interface for decompipe."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from contract.coordinates import pipeline_coordinates
from contract.errors import ConfigurationError, PipelineError
from logging_config import setup_logging
from pipeline.build import create_services, generate_sources
from rules.config import load_config, resolve_paths
from store.local import LocalArtifactStore
from verify.verify import verify_cache_determinism

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root holding decompipe.toml (default: .)",
    )
    parser.add_argument("--minecraft-version", default=None, help="Game version id")
    parser.add_argument("--srg-version", default=None, help="SRG mapping version")
    parser.add_argument(
        "--mcp-version", default=None, help="MCP mapping '<channel>-<version>'"
    )
    parser.add_argument("--cache-dir", default=None, help="Artifact store root")
    parser.add_argument(
        "--workers", type=int, default=None, help="Worker threads per stage"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="decompipe")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Generate the patched source tree"
    )
    _add_common_options(generate_parser)
    generate_parser.add_argument(
        "--source-dir", default=None, help="Generated source directory"
    )
    generate_parser.add_argument(
        "--patch-dir", default=None, help="Directory of *.patch files"
    )
    generate_parser.add_argument(
        "--access-transformer",
        action="append",
        default=None,
        dest="access_transformers",
        help="Access transformation file (repeatable)",
    )
    generate_parser.add_argument(
        "--encoding",
        default=None,
        dest="source_encoding",
        help="Encoding of the generated sources",
    )

    coordinates_parser = subparsers.add_parser(
        "coordinates", help="List cached artifact coordinates"
    )
    _add_common_options(coordinates_parser)

    verify_parser = subparsers.add_parser(
        "verify", help="Verify cached artifacts are reproducible"
    )
    _add_common_options(verify_parser)

    return parser


_OVERRIDE_OPTIONS = (
    "minecraft_version",
    "srg_version",
    "mcp_version",
    "cache_dir",
    "workers",
    "source_dir",
    "patch_dir",
    "access_transformers",
    "source_encoding",
)


def _overrides(args: argparse.Namespace) -> dict[str, object]:
    return {name: getattr(args, name, None) for name in _OVERRIDE_OPTIONS}


def _handle_generate(root: Path, args: argparse.Namespace) -> int:
    config = load_config(root, _overrides(args))
    paths = resolve_paths(root, config)
    services = create_services(config, paths)
    try:
        report = generate_sources(config, paths, services)
    finally:
        services.close()
    sys.stdout.write(
        f"executed: {len(report.executed)} skipped: {len(report.skipped)}\n"
    )
    sys.stdout.write(f"sources: {paths.source_dir}\n")
    return EXIT_OK


def _handle_coordinates(root: Path, args: argparse.Namespace) -> int:
    config = load_config(root, _overrides(args))
    paths = resolve_paths(root, config)
    store = LocalArtifactStore(paths.cache_dir)
    coordinates = pipeline_coordinates(
        config.minecraft_version, config.srg_version, config.mcp_version
    )
    for coordinate in coordinates.all():
        state = "cached" if store.exists(coordinate) else "missing"
        sys.stdout.write(f"{state}\t{coordinate}\n")
    return EXIT_OK


def _handle_verify(root: Path, args: argparse.Namespace) -> int:
    config = load_config(root, _overrides(args))
    paths = resolve_paths(root, config)
    services = create_services(config, paths)
    try:
        result = verify_cache_determinism(config, services)
    finally:
        services.close()
    if not result.ok:
        for label, coordinates in (
            ("missing", result.missing),
            ("mismatches", result.mismatches),
        ):
            for coordinate in coordinates:
                sys.stderr.write(f"{label}: {coordinate}\n")
        return EXIT_FAILURE
    return EXIT_OK


_HANDLERS = {
    "generate": _handle_generate,
    "coordinates": _handle_coordinates,
    "verify": _handle_verify,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    root = Path(args.root).expanduser().resolve()
    try:
        return _HANDLERS[args.command](root, args)
    except ConfigurationError as exc:
        sys.stderr.write(f"configuration error: {exc}\n")
        return EXIT_CONFIGURATION
    except PipelineError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
