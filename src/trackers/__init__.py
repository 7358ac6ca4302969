"""Trackers module for repository enrichment signals."""

from .hn_tracker import HNTracker
from .reddit_tracker import RedditTracker, reddit_time_filter
from .x_tracker import XTracker
from .buzz import BuzzAggregator
from .owner_profile import fetch_owner_profile, split_repo

__all__ = [
    "HNTracker",
    "RedditTracker",
    "reddit_time_filter",
    "XTracker",
    "BuzzAggregator",
    "fetch_owner_profile",
    "split_repo",
]
