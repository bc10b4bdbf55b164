"""
Example: Build the nixpkgs-unstable databases into ./data.

Usage:
    python examples/generate_nixpkgs_db.py
"""

import asyncio
from pathlib import Path

from nix_data_generator import DataGenerator
from nix_data_generator.core.flavors import NIXPKGS


async def main():
    source_dir = Path("./data")
    generator = DataGenerator(flavor=NIXPKGS, source_dir=source_dir)

    result = await generator.run("unstable")

    print(f"\n{result.status.value}: nixpkgs {result.version} in {source_dir.absolute()}")


if __name__ == "__main__":
    asyncio.run(main())
