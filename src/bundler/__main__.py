"""
=============================================================================
COMMAND LINE
=============================================================================

    python -m bundler routes assets.json
    python -m bundler compile assets.json /bundle.js > bundle.min.js
    python -m bundler compile assets.json /i18n.js --locale fr -o i18n.fr.js

Source files are resolved against --source-root, or the manifest's own
directory when it is not given. The compiled body goes to stdout (or
--output); the ETag goes to stderr so shell pipelines stay clean.

Exit status is 1 for any bundler error (bad manifest, missing source,
failed minification).

=============================================================================
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .app import setup_logging
from .config import BundlerConfig
from .errors import BundlerError
from .manifest import apply_manifest, load_manifest
from .pipeline import Pipeline


logger = logging.getLogger("bundler.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bundler",
        description="Compile asset bundles described by a JSON manifest",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m bundler routes assets.json
  python -m bundler compile assets.json /bundle.js
  python -m bundler compile assets.json /i18n.js --locale fr -o out.js
        """,
    )
    parser.add_argument(
        "--source-root", "-r",
        default=None,
        help="Directory source files are read from (default: manifest directory)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"bundler {__version__}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    routes = commands.add_parser("routes", help="List the routes a manifest registers")
    routes.add_argument("manifest", help="Path to the JSON manifest")

    compile_ = commands.add_parser("compile", help="Compile one asset")
    compile_.add_argument("manifest", help="Path to the JSON manifest")
    compile_.add_argument("route", help="Route of the asset, e.g. /bundle.js")
    compile_.add_argument("--locale", default=None, help="Locale for localized assets")
    compile_.add_argument("--output", "-o", default=None, help="Write the body here instead of stdout")

    return parser


def load_pipeline(manifest: str, source_root: str | None) -> Pipeline:
    root = source_root or str(Path(manifest).resolve().parent)
    config = BundlerConfig(source_root=root)
    config.validate()
    pipeline = Pipeline(config=config)
    apply_manifest(pipeline, load_manifest(manifest))
    pipeline.freeze()
    return pipeline


def cmd_routes(args: argparse.Namespace) -> int:
    pipeline = load_pipeline(args.manifest, args.source_root)
    for asset in pipeline:
        flags = " (localized)" if asset.is_localized else ""
        steps = ", ".join(step.name for step in asset.pre_processors + asset.post_processors) or "-"
        print(f"{asset.route}\t{asset.content_type}\t{len(asset.source_files)} file(s)\t{steps}{flags}")
    pipeline.close()
    return 0


def cmd_compile(args: argparse.Namespace) -> int:
    pipeline = load_pipeline(args.manifest, args.source_root)
    try:
        asset = pipeline.get(args.route)
        if asset is None:
            print(f"error: no asset registered for {args.route}", file=sys.stderr)
            return 1

        artifact = asset.get_output(args.locale)
        if args.output:
            Path(args.output).write_bytes(artifact.body)
        else:
            sys.stdout.buffer.write(artifact.body)
            sys.stdout.flush()
        print(f"ETag: {artifact.etag}", file=sys.stderr)
        return 0
    finally:
        pipeline.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    commands = {"routes": cmd_routes, "compile": cmd_compile}
    try:
        return commands[args.command](args)
    except BundlerError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
