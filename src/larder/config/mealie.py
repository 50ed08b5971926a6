"""Mealie store configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

MEALIE_TIMEOUT_SECONDS = 30.0
DEFAULT_PAGE_SIZE = 200
DEFAULT_THROTTLE_SECONDS = 0.1


@dataclass(frozen=True)
class MealieConfig:
    """Holds Mealie API configuration values."""

    base_url: str
    token: str
    resilience: ResilienceConfig
    page_size: int = DEFAULT_PAGE_SIZE


def get_mealie_config(*, resilience: ResilienceConfig | None = None) -> MealieConfig:
    values = require_env_vars(("MEALIE_URL", "MEALIE_TOKEN"))
    base_url = values["MEALIE_URL"].rstrip("/")
    token = values["MEALIE_TOKEN"]
    return MealieConfig(
        base_url=base_url,
        token=token,
        page_size=env_int("MEALIE_PAGE_SIZE", DEFAULT_PAGE_SIZE, minimum=1),
        resilience=resilience
        or ResilienceConfig(
            name="mealie",
            base_url=base_url,
            timeout_seconds=MEALIE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            mutation_delay_seconds=env_float(
                "MEALIE_THROTTLE_SECONDS", DEFAULT_THROTTLE_SECONDS, minimum=0.0
            ),
            default_headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        ),
    )
