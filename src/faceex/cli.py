"""Command-line entry point: validate, migrate and synthesize without a UI.

Usage:
    faceex validate CONFIG
    faceex migrate LEGACY -o OUT
    faceex synthesize KEYFRAMES -o CLIP [--raw]
"""

import argparse
import logging
import sys
from pathlib import Path

from faceex.animation.config_store import (
    ConfigurationStore, is_legacy_document, migrate_legacy_document,
)
from faceex.animation.keyframes import KeyframeStore
from faceex.animation.tracks import SynthesisError, clip_to_dict, synthesize
from faceex.core.config_loader import ConfigSourceError, fetch_json, save_json


def _print_errors(errors) -> None:
    for e in errors:
        print(f"  {e}")


def cmd_validate(args) -> int:
    try:
        document = fetch_json(args.config)
    except ConfigSourceError as e:
        print(f"ERROR: {e}")
        return 1
    if is_legacy_document(document):
        print("Legacy format, checking the migrated document")
        try:
            document = migrate_legacy_document(document)
        except ValueError as e:
            print(f"{args.config}: cannot migrate ({e})")
            return 1

    store = ConfigurationStore()
    if store.validate(document):
        print(f"{args.config}: valid")
        return 0
    print(f"{args.config}: {len(store.errors())} error(s)")
    _print_errors(store.errors())
    return 1


def cmd_migrate(args) -> int:
    try:
        document = fetch_json(args.legacy)
    except ConfigSourceError as e:
        print(f"ERROR: {e}")
        return 1
    if not is_legacy_document(document):
        print(f"{args.legacy}: not a legacy configuration, nothing to migrate")
        return 1

    try:
        migrated = migrate_legacy_document(document)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1
    store = ConfigurationStore()
    if not store.validate(migrated):
        print(f"Migrated document has {len(store.errors())} error(s), not written")
        _print_errors(store.errors())
        return 1
    save_json(Path(args.output), migrated)
    print(f"Wrote {len(migrated['actionUnits'])} Action Units and "
          f"{len(migrated['expressions'])} Expressions to {args.output}")
    return 0


def cmd_synthesize(args) -> int:
    try:
        document = fetch_json(args.keyframes)
    except ConfigSourceError as e:
        print(f"ERROR: {e}")
        return 1

    store = KeyframeStore()
    if not store.load_dict(document):
        print(f"{args.keyframes}: invalid keyframes")
        _print_errors(store.errors())
        return 1
    try:
        clip = synthesize(store.get_keyframes(), isi_aware=not args.raw)
    except SynthesisError as e:
        print(f"ERROR: {e}")
        return 1

    save_json(Path(args.output), clip_to_dict(clip))
    print(f"Wrote clip {clip.name!r}: {len(clip.tracks)} tracks, {clip.duration:.3f}s -> {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="faceex", description="FACS expression configuration tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("validate", help="Check a configuration file or URL")
    p.add_argument("config")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("migrate", help="Convert an action_units/combinedActionUnits file")
    p.add_argument("legacy")
    p.add_argument("-o", "--output", required=True)
    p.set_defaults(func=cmd_migrate)

    p = sub.add_parser("synthesize", help="Build animation tracks from exported keyframes")
    p.add_argument("keyframes")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("--raw", action="store_true",
                   help="Plain pose sequence with eased interpolation, no blank-frame handling")
    p.set_defaults(func=cmd_synthesize)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
