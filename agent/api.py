"""
Spark Finder - HTTP API

A FastAPI server exposing repository ranking, velocity checks, star
trajectories and enrichment lookups as JSON endpoints.

Usage:
    uvicorn agent.api:app --host 0.0.0.0 --port 8080

Or run directly:
    python -m agent.api

Security:
    Set SPARK_API_KEY env var to enable API key authentication.
    Clients must pass X-API-Key header or ?api_key= query parameter.
    If SPARK_API_KEY is not set, authentication is disabled (open access).
"""

import asyncio
import os
import sys
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

try:
    from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
    from fastapi.responses import JSONResponse
    from fastapi.security import APIKeyHeader, APIKeyQuery
    from pydantic import BaseModel
    from starlette.middleware.base import BaseHTTPMiddleware
except ImportError:
    print("FastAPI not installed. Run: pip install fastapi uvicorn")
    sys.exit(1)

from analyzers import (
    RankingPipeline,
    TrajectoryBuilder,
    VelocityEstimator,
    parse_window_days,
    suggest_velocity_window,
    summarize_repo,
)
from db import SubscriberStore, get_store, is_valid_email
from errors import ConfigurationError, NotFoundError, SparkError, ValidationError
from main import load_config
from notifiers import create_notifiers
from scanner import TrendScanner
from scrapers import GitHubAPI
from trackers import BuzzAggregator, fetch_owner_profile, split_repo
from utils.cache import DEFAULT_TTL, TTLCache
from utils.logging_config import get_logger

logger = get_logger("api")

CONFIG = load_config()


# ============================================================
# Security: API Key Authentication
# ============================================================

API_KEY = os.environ.get("SPARK_API_KEY", "")

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
api_key_query = APIKeyQuery(name="api_key", auto_error=False)


async def verify_api_key(
    header_key: Optional[str] = Security(api_key_header),
    query_key: Optional[str] = Security(api_key_query),
) -> Optional[str]:
    """Verify API key from header or query parameter."""
    if not API_KEY:
        return None  # Auth disabled
    key = header_key or query_key
    if not key or key != API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return key


# ============================================================
# Security: Rate Limiting Middleware
# ============================================================

# Per-IP request timestamps
_rate_limit_store: dict[str, list[float]] = defaultdict(list)
RATE_LIMIT_REQUESTS = int(os.environ.get("SPARK_RATE_LIMIT", "60"))
RATE_LIMIT_WINDOW = 60  # seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()

        recent = [t for t in _rate_limit_store.get(client_ip, []) if now - t < RATE_LIMIT_WINDOW]
        if len(recent) >= RATE_LIMIT_REQUESTS:
            _rate_limit_store[client_ip] = recent
            return JSONResponse(
                status_code=429,
                content={"message": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(RATE_LIMIT_WINDOW)},
            )

        recent.append(now)
        _rate_limit_store[client_ip] = recent
        return await call_next(request)


# ============================================================
# Shared state
# ============================================================

velocity_cache = TTLCache(ttl=CONFIG.get("velocity", {}).get("cache_ttl_seconds", DEFAULT_TTL))

_store: Optional[SubscriberStore] = None


async def get_github():
    """Per-request GitHub client; refuses to run without a token."""
    github = GitHubAPI(CONFIG)
    if not github.has_token:
        raise ConfigurationError("Server error: GitHub token not configured.")
    try:
        yield github
    finally:
        await github.close()


async def get_buzz():
    buzz = BuzzAggregator(CONFIG)
    try:
        yield buzz
    finally:
        await buzz.close()


def get_subscriber_store() -> SubscriberStore:
    global _store
    if _store is None:
        _store = get_store(CONFIG)
    return _store


@asynccontextmanager
async def lifespan(app: FastAPI):
    scanner_task = None
    if CONFIG.get("scanner", {}).get("enabled", False):
        github = GitHubAPI(CONFIG)
        scanner = TrendScanner(CONFIG, github, get_subscriber_store(), create_notifiers(CONFIG))
        scanner_task = asyncio.create_task(scanner.run_forever())
    try:
        yield
    finally:
        if scanner_task is not None:
            scanner_task.cancel()
            try:
                await scanner_task
            except asyncio.CancelledError:
                pass
            await github.close()


app = FastAPI(
    title="Spark Finder API",
    description="Find fast-growing GitHub repositories",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RateLimitMiddleware)

if not API_KEY:
    logger.warning(
        "SPARK_API_KEY not set - API is open without authentication. "
        "Set SPARK_API_KEY env var to enable API key auth."
    )


@app.exception_handler(SparkError)
async def spark_error_handler(request: Request, exc: SparkError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


# ============================================================
# Models
# ============================================================


class SubscribeRequest(BaseModel):
    email: str


def _require_repo(repo: Optional[str]) -> str:
    if not repo:
        raise ValidationError('Missing "repo" query parameter.')
    split_repo(repo)
    return repo.strip()


def _optional_int(value: Optional[str], name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except ValueError:
        raise ValidationError(f'"{name}" must be a positive integer.')
    if number < 1:
        raise ValidationError(f'"{name}" must be a positive integer.')
    return number


# ============================================================
# Endpoints
# ============================================================


@app.get("/health")
async def health():
    """Health check endpoint for monitoring and container orchestration."""
    return {
        "status": "ok",
        "auth_enabled": bool(API_KEY),
        "github_token_configured": GitHubAPI(CONFIG).has_token,
        "cached_velocities": len(velocity_cache),
    }


@app.get("/")
async def root():
    """API info and available endpoints."""
    return {
        "name": "Spark Finder API",
        "version": "1.0.0",
        "endpoints": {
            "/health": "GET - Health check",
            "/api/search": "GET - Rank recently created repositories by stars per day",
            "/api/true-velocity": "GET - Stars gained over the last checkDays days",
            "/api/star-history": "GET - Daily star counts over a trailing window",
            "/api/social-buzz": "GET - Hacker News, Reddit and X mentions",
            "/api/profile": "GET - Repository owner profile",
            "/api/summary": "GET - AI summary of why a repository is trending",
            "/api/subscribe": "POST/DELETE - Manage scanner alert subscriptions",
            "/api/unsubscribe": "POST - Unsubscribe with a JSON body",
            "/api/alerts": "GET - Repositories announced by the scanner",
            "/api/clear-cache": "POST - Clear the velocity cache",
            "/api/cache-status": "GET - Inspect the velocity cache",
        },
        "docs": "/docs",
    }


@app.get("/api/search", dependencies=[Security(verify_api_key)])
async def search(
    days: Optional[str] = Query(None, description='Creation window in days, or "all"'),
    page: Optional[str] = Query(None, description="Search result page"),
    custom: bool = Query(False, description="Window was entered by hand rather than a preset"),
    github: GitHubAPI = Depends(get_github),
):
    """Repositories created in the window, re-ranked by stars per day."""
    window = parse_window_days(days)
    page_number = _optional_int(page, "page") or 1
    ranking_cfg = CONFIG.get("ranking", {})
    pipeline = RankingPipeline(
        github,
        per_page=ranking_cfg.get("per_page", 50),
        top_n=ranking_cfg.get("top_n", 25),
    )
    ranked = await pipeline.rank(window, page=page_number)
    return {
        "days": window,
        "page": page_number,
        "suggested_velocity_days": suggest_velocity_window(window, custom=custom),
        "repos": [r.to_dict() for r in ranked],
    }


@app.get("/api/true-velocity", dependencies=[Security(verify_api_key)])
async def true_velocity(
    repo: Optional[str] = Query(None, description="Repository as owner/name"),
    checkDays: Optional[str] = Query(None, description="Trailing window in days (default 7)"),
    github: GitHubAPI = Depends(get_github),
):
    """Stars received over the trailing window, served from cache when fresh."""
    repo = _require_repo(repo)
    window = parse_window_days(checkDays, default=7, name="checkDays")
    estimator = VelocityEstimator(github, cache=velocity_cache)
    result = await estimator.estimate(repo, window)
    return result.to_dict()


@app.get("/api/star-history", dependencies=[Security(verify_api_key)])
async def star_history(
    repo: Optional[str] = Query(None, description="Repository as owner/name"),
    days: Optional[str] = Query(None, description="Window in days (max 365)"),
    daysOld: Optional[str] = Query(None, description="Repository age in days"),
    github: GitHubAPI = Depends(get_github),
):
    repo = _require_repo(repo)
    age = _optional_int(daysOld, "daysOld")
    trajectory_cfg = CONFIG.get("trajectory", {})
    builder = TrajectoryBuilder(
        github,
        batch_size=CONFIG.get("github", {}).get("batch_size", 10),
        max_days=trajectory_cfg.get("max_days", 365),
        default_days=trajectory_cfg.get("default_days", 30),
    )
    entity = await github.get_repo(repo)
    series = await builder.build(entity, days, age_days=age)
    return series.to_dict()


@app.get("/api/social-buzz", dependencies=[Security(verify_api_key)])
async def social_buzz(
    repo: Optional[str] = Query(None, description="Repository as owner/name"),
    days: Optional[str] = Query(None, description="Look-back in days (default 30)"),
    buzz: BuzzAggregator = Depends(get_buzz),
):
    repo = _require_repo(repo)
    window = parse_window_days(days, default=30)
    return await buzz.fetch_all(repo, window)


@app.get("/api/profile", dependencies=[Security(verify_api_key)])
async def profile(
    repo: Optional[str] = Query(None, description="Repository as owner/name"),
    github: GitHubAPI = Depends(get_github),
):
    repo = _require_repo(repo)
    return await fetch_owner_profile(github, repo)


@app.get("/api/summary", dependencies=[Security(verify_api_key)])
async def summary(
    repo: Optional[str] = Query(None, description="Repository as owner/name"),
    github: GitHubAPI = Depends(get_github),
    buzz: BuzzAggregator = Depends(get_buzz),
):
    """AI-generated explanation of why a repository is trending."""
    repo = _require_repo(repo)
    mentions = await buzz.fetch_all(repo, 30)
    return await summarize_repo(github, repo, buzz=mentions)


@app.post("/api/subscribe", dependencies=[Security(verify_api_key)])
async def subscribe(
    request: SubscribeRequest,
    store: SubscriberStore = Depends(get_subscriber_store),
):
    email = request.email.strip().lower()
    if not is_valid_email(email):
        raise ValidationError("A valid email address is required.")
    added = await asyncio.to_thread(store.add_subscriber, email)
    message = "Subscribed" if added else "Already subscribed"
    return {"message": message, "email": email}


async def _unsubscribe(email: Optional[str], store: SubscriberStore) -> dict:
    if not email:
        raise ValidationError('Missing "email" parameter.')
    email = email.strip().lower()
    removed = await asyncio.to_thread(store.remove_subscriber, email)
    if not removed:
        raise NotFoundError("Subscriber not found")
    return {"message": "Unsubscribed", "email": email}


@app.delete("/api/subscribe", dependencies=[Security(verify_api_key)])
async def unsubscribe(
    email: Optional[str] = Query(None, description="Address to remove"),
    store: SubscriberStore = Depends(get_subscriber_store),
):
    return await _unsubscribe(email, store)


@app.post("/api/unsubscribe", dependencies=[Security(verify_api_key)])
async def unsubscribe_post(
    request: SubscribeRequest,
    store: SubscriberStore = Depends(get_subscriber_store),
):
    """Unsubscribe with a JSON body, for clients that cannot send DELETE."""
    return await _unsubscribe(request.email, store)


@app.get("/api/alerts", dependencies=[Security(verify_api_key)])
async def alerts(
    limit: Optional[str] = Query(None, description="Maximum number of alerts"),
    store: SubscriberStore = Depends(get_subscriber_store),
):
    """Repositories the scanner has announced, newest first."""
    limit = _optional_int(limit, "limit") or 50
    rows = await asyncio.to_thread(store.get_alerted, min(limit, 500))
    return {"count": len(rows), "alerts": rows}


@app.post("/api/clear-cache", dependencies=[Security(verify_api_key)])
async def clear_cache():
    cleared = velocity_cache.clear()
    return {"message": f"Cleared {cleared} cached entries", "cleared": cleared}


@app.get("/api/cache-status", dependencies=[Security(verify_api_key)])
async def cache_status():
    return velocity_cache.status()


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")
