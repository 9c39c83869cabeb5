#!/usr/bin/env python3
"""
Headless Snow Crystal Runner

Runs one simulation for a fixed number of ticks and saves the final
lattice as a snapshot (.npz) for plot_crystal.py.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add package source to path
SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from snow_sim import (  # noqa: E402
    SimulationController,
    parameters_from_dict,
    utils,
)
from snow_sim.growth import RULES  # noqa: E402
from snow_sim.lattice import BOUNDARY_MODES  # noqa: E402


def main():
    parser = argparse.ArgumentParser(
        description="Grow a snow crystal on a hexagonal lattice",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--model",
        choices=sorted(RULES),
        default="reiter",
        help="Growth model (default: reiter)",
    )
    parser.add_argument("--size", type=int, default=201, help="Lattice edge length (default: 201)")
    parser.add_argument("--ticks", type=int, default=2000, help="Number of ticks to run (default: 2000)")
    parser.add_argument(
        "--boundary",
        choices=sorted(BOUNDARY_MODES),
        default="periodic",
        help="Edge policy (default: periodic)",
    )
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count, max 8)")
    parser.add_argument("--params", type=str, default=None, help="JSON/TOML file with model parameters")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for the noise term (default: 42)")
    parser.add_argument("--report-every", type=int, default=500, help="Progress interval in ticks")
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output .npz file path (auto-generated if not provided)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = utils.load_params(args.params) if args.params else {}
    parameters = parameters_from_dict(args.model, config)

    print(f"Running {args.model}: size={args.size}, ticks={args.ticks}, boundary={args.boundary}")
    print(f"  Parameters: {parameters.as_dict()}")
    start_time = time.time()

    with SimulationController(
        args.model,
        args.size,
        parameters=parameters,
        boundary=args.boundary,
        workers=args.workers,
        random_seed=args.seed,
    ) as sim:
        sim.start()
        remaining = args.ticks
        while remaining > 0:
            chunk = min(args.report_every, remaining)
            sim.run(chunk)
            remaining -= chunk
            snap = sim.snapshot()
            print(
                f"  [{snap.tick}/{args.ticks}] ice cells={snap.ice_count()}, "
                f"total mass={snap.total_mass():.4f}"
            )
        snap = sim.snapshot()

    elapsed_time = time.time() - start_time

    if args.out is None:
        output_dir = Path("results")
        output_dir.mkdir(exist_ok=True)
        args.out = str(output_dir / f"{args.model}_n{args.size}_t{args.ticks}_{utils.now_str()}.npz")

    utils.save_snapshot(args.out, snap)

    print(f"\nSimulation completed in {elapsed_time:.2f} seconds")
    print(f"   Ice cells: {snap.ice_count()}")
    print(f"   Output saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
