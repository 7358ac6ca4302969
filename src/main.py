#!/usr/bin/env python3
"""Command-line entry point for Spark Finder."""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

import yaml

from utils.logging_config import get_logger, setup_logging

logger = get_logger("main")

from analyzers import RankingPipeline, TrajectoryBuilder, VelocityEstimator, parse_window_days
from db import get_store
from errors import SparkError
from notifiers import create_notifiers
from scanner import TrendScanner
from scrapers import GitHubAPI


def load_config(config_path: str = "config.yaml") -> dict:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file.

    Returns:
        Configuration dictionary.
    """
    # Try multiple paths for config
    paths_to_try = [
        config_path,
        Path(__file__).parent.parent / "config.yaml",
        Path.cwd() / "config.yaml",
    ]

    for path in paths_to_try:
        if Path(path).exists():
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}

    logger.warning("Config file not found, using defaults")
    return {}


async def run_rank(config: dict, args) -> dict:
    github = GitHubAPI(config)
    ranking_cfg = config.get("ranking", {})
    try:
        pipeline = RankingPipeline(
            github,
            per_page=ranking_cfg.get("per_page", 50),
            top_n=ranking_cfg.get("top_n", 25),
        )
        ranked = await pipeline.rank(parse_window_days(args.days), page=args.page)
    finally:
        await github.close()
    return {"repos": [r.to_dict() for r in ranked]}


async def run_velocity(config: dict, args) -> dict:
    github = GitHubAPI(config)
    try:
        result = await VelocityEstimator(github).estimate(args.repo, args.days)
    finally:
        await github.close()
    return result.to_dict()


async def run_trajectory(config: dict, args) -> dict:
    github = GitHubAPI(config)
    trajectory_cfg = config.get("trajectory", {})
    try:
        builder = TrajectoryBuilder(
            github,
            batch_size=config.get("github", {}).get("batch_size", 10),
            max_days=trajectory_cfg.get("max_days", 365),
            default_days=trajectory_cfg.get("default_days", 30),
        )
        entity = await github.get_repo(args.repo)
        series = await builder.build(entity, args.days)
    finally:
        await github.close()
    return series.to_dict()


async def run_scan(config: dict, args) -> dict:
    github = GitHubAPI(config)
    store = get_store(config)
    scanner = TrendScanner(config, github, store, create_notifiers(config))
    try:
        report = await scanner.scan_once()
    finally:
        await github.close()
        store.close()
    return report.to_dict()


COMMANDS = {
    "rank": run_rank,
    "velocity": run_velocity,
    "trajectory": run_trajectory,
    "scan": run_scan,
}


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Spark Finder - find fast-growing GitHub repositories"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    rank = sub.add_parser("rank", help="Rank recently created repositories by stars per day")
    rank.add_argument("--days", default="7", help='Creation window in days, or "all"')
    rank.add_argument("--page", type=int, default=1, help="Search result page")

    velocity = sub.add_parser("velocity", help="Stars gained over a trailing window")
    velocity.add_argument("repo", help="Repository as owner/name")
    velocity.add_argument("--days", type=int, default=7, help="Window in days")

    trajectory = sub.add_parser("trajectory", help="Daily star histogram")
    trajectory.add_argument("repo", help="Repository as owner/name")
    trajectory.add_argument("--days", default="30", help="Window in days (max 365)")

    sub.add_parser("scan", help="Run one background-scanner round")

    serve = sub.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8080")))

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    if args.log_file:
        setup_logging(log_file=args.log_file)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("agent.api:app", host=args.host, port=args.port, log_level="warning")
        return 0

    config = load_config(args.config)
    if not GitHubAPI(config).has_token:
        logger.warning("No GitHub token configured; requests are unauthenticated")

    try:
        result = asyncio.run(COMMANDS[args.command](config, args))
    except SparkError as e:
        logger.error("%s failed: %s", args.command, e)
        print(json.dumps({"message": e.message}), file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
