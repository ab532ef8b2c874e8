"""Convert exported boundary files into strict GeoJSON and inspect them.

Boundary exports from the old dashboard were JavaScript modules
(``const regions = { ... };``). The backend only reads strict JSON, so each
file is cut down to the outermost ``{ ... }`` object, validated as a GeoJSON
FeatureCollection and rewritten as indented JSON. Files that still are not
valid JSON (unquoted keys, trailing commas, comments) are reported and left
untouched; fix those by hand.

Usage:
  python scripts/repair_boundaries.py repair data/regions.js                   # Rewrite as data/regions.json
  python scripts/repair_boundaries.py repair data/*.js --output datasets/boundaries
  python scripts/repair_boundaries.py repair datasets/boundaries/*.json --check  # Validate only
  python scripts/repair_boundaries.py list datasets/boundaries/regions.json     # Feature count + labels
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from geo_data import BoundaryDataError, normalize_regions, parse_feature_collection, region_label  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("boundary_repair")


def extract_object(text: str) -> str:
    """Slice from the first ``{`` to the last ``}``, dropping any JS wrapper."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise BoundaryDataError("Could not find GeoJSON object boundaries")
    return text[start:end + 1]


def repair_file(path: Path, output_dir: Path | None = None, check_only: bool = False) -> Path | None:
    text = path.read_text(encoding="utf-8")
    data = parse_feature_collection(extract_object(text))
    if check_only:
        return None

    target = (output_dir or path.parent) / f"{path.stem}.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    return target


def cmd_repair(args) -> int:
    failures = 0
    paths = [Path(p) for p in args.paths]
    output_dir = Path(args.output) if args.output else None

    for path in tqdm(paths, desc="Repairing boundaries", disable=len(paths) < 2):
        try:
            target = repair_file(path, output_dir, check_only=args.check)
        except FileNotFoundError:
            logger.error(f"{path}: file not found")
            failures += 1
            continue
        except UnicodeDecodeError as e:
            logger.error(f"{path}: not UTF-8 text: {e}")
            failures += 1
            continue
        except BoundaryDataError as e:
            logger.error(f"{path}: not a valid FeatureCollection: {e}")
            failures += 1
            continue
        if target is None:
            logger.info(f"{path}: OK")
        else:
            logger.info(f"{path} → {target}")

    if failures:
        logger.error(f"{failures}/{len(paths)} files failed")
        return 1
    return 0


def cmd_list(args) -> int:
    path = Path(args.path)
    try:
        data = parse_feature_collection(path.read_bytes())
    except (FileNotFoundError, BoundaryDataError) as e:
        logger.error(f"{path}: {e}")
        return 1

    features = data["features"]
    usable = normalize_regions(data)["features"]
    print(f"Region Count: {len(features)} ({len(usable)} with polygon geometry)")
    for i, feature in enumerate(features):
        print(f"Region {i}: {region_label(feature.get('properties'))}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Rewrite boundary exports as strict GeoJSON and inspect them",
    )
    sub = parser.add_subparsers(dest="command")

    repair = sub.add_parser("repair", help="Convert files to strict JSON")
    repair.add_argument("paths", nargs="+", help="Boundary files (.js or .json)")
    repair.add_argument("--output", help="Directory for the rewritten files (default: alongside input)")
    repair.add_argument("--check", action="store_true", help="Validate only, write nothing")

    listing = sub.add_parser("list", help="Print feature count and region labels")
    listing.add_argument("path", help="Boundary file (strict JSON)")

    args = parser.parse_args(argv)
    if args.command == "repair":
        return cmd_repair(args)
    if args.command == "list":
        return cmd_list(args)
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
