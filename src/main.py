"""
1) Read a family tree from a JSON payload or a GEDCOM file.
2) Validate the family tree data for lineage cycles and dangling references.
3) Compute node positions and routed connectors around the root person.
4) Write the layout as JSON.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from config import PLACEMENT_HIERARCHICAL, PLACEMENT_ROWS, LayoutConfig
from engine import compute_layout
from errors import LayoutError
from parsing import load_gedcom, tree_from_dict
from validation import validate_tree


def read_tree(input_path: Path, root_id: int | None):
    if input_path.suffix.lower() == ".ged":
        return load_gedcom(input_path, root_id)
    with open(input_path, encoding="utf-8") as f:
        payload = json.load(f)
    return tree_from_dict(payload, root_id)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Lay out a family tree around a root person.")
    parser.add_argument("input", type=Path, help="JSON payload or GEDCOM (.ged) file")
    parser.add_argument("-o", "--output", type=Path, help="Where to write the layout JSON (default: stdout)")
    parser.add_argument("--root", type=int, help="Root person id (overrides the input's root)")
    parser.add_argument(
        "--placement",
        choices=[PLACEMENT_ROWS, PLACEMENT_HIERARCHICAL],
        default=PLACEMENT_ROWS,
        help="Built-in generation rows or Graphviz hierarchical placement",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        print(f"Reading family tree: {args.input}", file=sys.stderr)
        tree = read_tree(args.input, args.root)
        print(
            f"  Found {len(tree.persons)} persons and {len(tree.family_units)} family units",
            file=sys.stderr,
        )

        print("Validating tree...", file=sys.stderr)
        warnings = validate_tree(tree.persons, tree.family_units)
        if warnings:
            print(f"  Found {len(warnings)} validation warnings:", file=sys.stderr)
            for w in warnings[:10]:
                print(f"    - {w}", file=sys.stderr)
            if len(warnings) > 10:
                print(f"    ... and {len(warnings) - 10} more", file=sys.stderr)
        else:
            print("  No validation issues found", file=sys.stderr)

        print(f"Computing {args.placement} layout around person {tree.root_id}...", file=sys.stderr)
        config = replace(LayoutConfig(), placement=args.placement)
        layout = compute_layout(tree, config)
    except (OSError, json.JSONDecodeError, LayoutError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(
        f"  Layout has {len(layout.nodes)} nodes and {len(layout.edges)} edges "
        f"({layout.width:.0f} x {layout.height:.0f})",
        file=sys.stderr,
    )

    output = json.dumps(layout.to_dict(), indent=2)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
        print(f"Layout saved to {args.output}", file=sys.stderr)
    else:
        print(output)

    print("Done!", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
