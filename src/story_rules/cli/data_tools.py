from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List

from ..data.content import Content, load_content
from ..data.loader import YAML_SUFFIXES, DataLoader, DataValidationError
from ..exceptions import StoryRulesError
from ..logging_config import configure_logging
from ..world.rooms import TrapSeverity

logger = logging.getLogger(__name__)

CONTENT_SUFFIXES = (".json",) + YAML_SUFFIXES


def _collect(path: Path) -> List[Path]:
    if path.is_dir():
        return sorted(p for p in path.rglob("*") if p.suffix.lower() in CONTENT_SUFFIXES)
    return [path]


def _cmd_validate(args: argparse.Namespace) -> int:
    loader = DataLoader()

    success = True
    for p in _collect(Path(args.path)):
        try:
            loader.load(p, validate=args.validate, schema=args.schema)
            print(f"OK: {p}")
        except DataValidationError as e:
            success = False
            print(f"INVALID: {p}\n{e.to_human()}\n")
        except (StoryRulesError, OSError) as e:
            success = False
            print(f"ERROR: {p}: {e}")

    return 0 if success else 1


def check_traps(content: Content) -> List[str]:
    """Cross-reference trap definitions against the loaded rooms and items."""
    problems: List[str] = []
    owners: Dict[str, str] = {}
    for room in content.rooms.all():
        for trap in room.traps:
            where = f"{room.id}/{trap.id}"
            if trap.id in owners:
                problems.append(f"{where}: trap id also used in room {owners[trap.id]}")
            else:
                owners[trap.id] = room.id
            target = trap.effect.teleport_to
            if target and target not in content.rooms:
                problems.append(f"{where}: teleports to unknown room {target!r}")
            if trap.disarm_item and trap.disarm_item not in content.catalog:
                problems.append(f"{where}: disarm item {trap.disarm_item!r} is not in the catalog")
            for item_id in trap.effect.items_lost:
                if item_id not in content.catalog:
                    problems.append(f"{where}: loses unknown item {item_id!r}")
            if trap.severity is TrapSeverity.FATAL and not trap.disarmable:
                problems.append(f"{where}: fatal trap cannot be disarmed")
    return problems


def _cmd_check_traps(args: argparse.Namespace) -> int:
    paths: List[Path] = []
    for raw in args.paths:
        paths.extend(_collect(Path(raw)))
    try:
        content = load_content(paths, loader=DataLoader())
    except DataValidationError as e:
        print(f"INVALID:\n{e.to_human()}")
        return 1
    except (StoryRulesError, OSError) as e:
        print(f"ERROR: {e}")
        return 1

    for room in content.rooms.all():
        if room.traps:
            kinds = ", ".join(sorted({t.kind for t in room.traps}))
            print(f"{room.id}: {len(room.traps)} trap(s) [{kinds}]")

    problems = check_traps(content)
    for problem in problems:
        print(f"PROBLEM: {problem}")
    if problems:
        return 1
    print("All traps OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="story-rules", description="story-rules content tools")
    sub = p.add_subparsers(dest="cmd", required=True)

    v = sub.add_parser("validate", help="Validate JSON/YAML content against the bundled schemas")
    v.add_argument("path", help="Path to a content file or a directory to scan")
    v.add_argument("--schema", help="Explicit schema name or URI", default=None)
    v.add_argument("--no-validate", dest="validate", action="store_false", help="Disable validation (load only)")
    v.set_defaults(func=_cmd_validate, validate=True)

    t = sub.add_parser("check-traps", help="Cross-check trap definitions against rooms and items")
    t.add_argument("paths", nargs="+", help="Content files or directories (items and rooms)")
    t.set_defaults(func=_cmd_check_traps)

    return p


def main(argv: list[str] | None = None) -> int:
    configure_logging(logging.WARNING)
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
