"""Command-line interface for planet mesh generation."""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a procedural planet mesh and report its statistics"
    )
    parser.add_argument(
        "--config", type=str, default=None, help="TOML config file (optional)"
    )
    parser.add_argument(
        "--biome", type=str, default=None, help="Biome preset (beach, forest, snowForest)"
    )
    parser.add_argument(
        "--shape", choices=["sphere", "plane"], default=None, help="Base shape (default: sphere)"
    )
    parser.add_argument(
        "--detail", type=int, default=None, help="Subdivision level (default: 20)"
    )
    parser.add_argument(
        "--scatter", type=float, default=None, help="Vertex jitter (default: 1.2)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: 0)")
    parser.add_argument(
        "--mode",
        choices=["thread", "process"],
        default=None,
        help="Run the worker in a thread or a process (default: process)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for planet generation."""
    args = build_parser().parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    import structlog

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )

    # Import here to avoid slow startup for --help
    from ..config import Config, load_config
    from ..planet import Planet

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Config not found: {config_path}", file=sys.stderr)
            raise SystemExit(1)
        config = load_config(config_path)
    else:
        config = Config()

    options = config.generation.model_dump()
    overrides = {
        "biome": args.biome,
        "shape": args.shape,
        "detail": args.detail,
        "scatter": args.scatter,
        "seed": args.seed,
    }
    options.update({key: value for key, value in overrides.items() if value is not None})

    worker = config.worker
    if args.mode:
        worker = worker.model_copy(update={"mode": args.mode})

    print(
        f"Generating {options['shape']} at detail {options['detail']} "
        f"with seed {options['seed']}"
    )
    print()

    async def run():
        async with Planet(options, worker) as planet:
            return await planet.create_mesh()

    start_time = time.time()
    result = asyncio.run(run())
    gen_time = time.time() - start_time

    print()
    if result.is_fallback:
        print(f"Generation failed, got fallback sphere in {gen_time:.1f}s")
        raise SystemExit(1)

    print(f"Generation complete in {gen_time:.1f}s")
    print(f"  Faces: {result.face_count:,}")
    print(f"  Terrain vertices: {result.terrain.vertex_count:,}")
    print(f"  Ocean vertices: {result.ocean.vertex_count:,}")
    for name, points in sorted(result.vegetation.items()):
        print(f"  {name}: {len(points):,}")


if __name__ == "__main__":
    main()
