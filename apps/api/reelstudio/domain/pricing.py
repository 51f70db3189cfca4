"""Token pricing for video generation jobs.

Provider cost is tracked in US cents per generated second. Users pay twice the
provider cost; the cent total is divided by 100 and rounded up to whole coins.
"""

from __future__ import annotations

import math

from reelstudio.errors import ApiError

MODEL_PRICING: dict[str, dict[str, int]] = {
    "seedance_2_0": {"1080p": 80, "720p": 40},
    "seedance_1_5_pro": {"1080p": 100, "720p": 50},
    "jimeng_3_0_pro": {"1080p": 100},
    "jimeng_3_0": {"1080p": 63, "720p": 28},
    "jimeng_s2_pro": {"720p": 65},
}

_USER_MARKUP = 2
_CENTS_PER_COIN = 100


def calculate_token_cost(model: str | None, resolution: str | None, duration_sec: int) -> int:
    cost_per_sec = MODEL_PRICING.get(model or "", {}).get(resolution or "")
    if not cost_per_sec:
        raise ApiError(
            status_code=422,
            code="UNSUPPORTED_MODEL",
            message="No pricing is defined for the requested model and resolution.",
            details={"model": model, "resolution": resolution},
        )

    user_cost_cents = cost_per_sec * duration_sec * _USER_MARKUP
    return math.ceil(user_cost_cents / _CENTS_PER_COIN)
