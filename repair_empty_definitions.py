#!/usr/bin/env python3
# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Repair scenario versions whose graph has no nodes.

Each such version gets a single trigger node configured with the scenario's
trigger type, so it can be opened and executed again.

Usage:
    python repair_empty_definitions.py [--definitions-dir DIR] [--dry-run]
"""

import argparse
import asyncio
from pathlib import Path

from scenario_engine.core.config import get_config
from scenario_engine.repair import repair_store
from scenario_engine.services.definition_store import DefinitionStore


async def run(definitions_dir: Path, dry_run: bool) -> int:
    print("=" * 70)
    print(f"Repairing empty scenario definitions in {definitions_dir}")
    print("=" * 70)

    store = DefinitionStore(definitions_dir)
    repaired = await repair_store(store, dry_run=dry_run)

    for ref in repaired:
        print(f"  {'Would fix' if dry_run else 'Fixed'}: {ref}")

    print(f"\nFound {len(repaired)} scenario versions with no nodes")
    if dry_run and repaired:
        print("Dry run - nothing was written. Re-run without --dry-run to apply.")
    return len(repaired)


def main():
    parser = argparse.ArgumentParser(description="Repair scenario versions with no nodes")
    parser.add_argument(
        "--definitions-dir",
        type=Path,
        default=None,
        help="Definitions directory (default: paths.definitions from the engine config)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    definitions_dir = args.definitions_dir or Path(get_config().definitions_path)
    asyncio.run(run(definitions_dir, args.dry_run))


if __name__ == "__main__":
    main()
