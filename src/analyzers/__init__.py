"""Analyzers module: ranking, velocity estimation and trajectories."""

from .pagination import BoundedConcurrencyBatcher, ScanState, DEFAULT_BATCH_SIZE
from .cutoff import CutoffLocator, CutoffSearch
from .velocity import VelocityEstimator, WindowScan
from .trajectory import TrajectoryBuilder, clamp_window, bucket_events, day_labels
from .ranking import (
    RankingPipeline,
    rank_entities,
    classify_category,
    parse_window_days,
    suggest_velocity_window,
)
from .summary import build_trending_prompt, summarize_repo

__all__ = [
    "BoundedConcurrencyBatcher",
    "ScanState",
    "DEFAULT_BATCH_SIZE",
    "CutoffLocator",
    "CutoffSearch",
    "VelocityEstimator",
    "WindowScan",
    "TrajectoryBuilder",
    "clamp_window",
    "bucket_events",
    "day_labels",
    "RankingPipeline",
    "rank_entities",
    "classify_category",
    "parse_window_days",
    "suggest_velocity_window",
    "build_trending_prompt",
    "summarize_repo",
]
