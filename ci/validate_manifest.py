"""CI validation: verify experiment manifests before they are published.

Reads a manifest JSON export and asserts structural and logical invariants
beyond what the runtime needs to load it. If anything is wrong, it exits
non-zero and fails the build.

Usage:
    python ci/validate_manifest.py experiments/foo/manifest.json
    python ci/validate_manifest.py experiments/foo/manifest.json --id foo
"""

import argparse
import json
import sys
from pathlib import Path

from src.experimentation.experiment import CONTROL
from src.experimentation.manifest import normalize

REQUIRED_TABLES = {"settings", "experiences"}


def validate(data: dict, experiment_id: str = "experiment") -> list[str]:
    """Return a list of validation errors (empty = pass)."""
    errors = []

    # --- Top-level structure ---
    if not isinstance(data, dict):
        return ["Manifest must be a JSON object"]

    for key in sorted(REQUIRED_TABLES):
        if key not in data:
            errors.append(f"Missing table: {key}")

    if errors:
        return errors  # Can't continue without structure

    config = normalize(data, experiment_id)
    if config is None:
        errors.append("Manifest cannot be normalized into an experiment config")
        return errors

    # --- Splits ---
    total = 0.0
    for name in config.challengers:
        split = config.variants[name].percentage_split
        try:
            value = float(split)
        except ValueError:
            errors.append(f"Variant {name} has invalid percentage split: {split!r}")
            continue
        if value < 0 or value > 1:
            errors.append(f"Variant {name} percentage split out of range: {split}")
        total += value

    if total > 1.0 + 1e-9:
        errors.append(f"Challenger splits sum to {total:.2f}, more than 1.0")

    # --- Blocks ---
    control_blocks = config.variants[CONTROL].blocks
    for name in config.challengers:
        blocks = config.variants[name].blocks
        if len(blocks) > len(control_blocks):
            errors.append(
                f"Variant {name} overrides {len(blocks)} blocks "
                f"but control only lists {len(control_blocks)}"
            )

    return errors


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate an experiment manifest")
    parser.add_argument("manifest", help="Path to the manifest JSON")
    parser.add_argument("--id", default=None, help="Experiment id (defaults to the folder name)")
    opts = parser.parse_args()

    path = Path(opts.manifest)
    if not path.exists():
        print(f"FAIL: {opts.manifest} not found.")
        sys.exit(1)

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        print(f"FAIL: {opts.manifest} is not valid JSON: {e}")
        sys.exit(1)

    experiment_id = opts.id or path.parent.name
    errors = validate(data, experiment_id)

    if errors:
        print(f"FAIL: {len(errors)} validation error(s):")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)

    config = normalize(data, experiment_id)
    print(f"PASS: Experiment {config.id} validated")
    print(f"  Status: {config.status}  Audience: {config.audience or '-'}")
    for name in config.variant_names:
        variant = config.variants[name]
        print(f"  {name}: {variant.label} (split={variant.percentage_split or '-'}, blocks={len(variant.blocks)})")


if __name__ == "__main__":
    main()
