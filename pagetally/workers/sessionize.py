import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict

import numpy as np
import pandas as pd


def round_half_up(x: float) -> int:
    # 2.5 -> 3, like a browser's Math.round
    if not math.isfinite(x):
        return 0
    return int(np.floor(x + 0.5))


def one_decimal(x: float) -> str:
    # half-up on the exact binary value, e.g. 1.25 -> "1.3"
    return str(Decimal(x).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def pages_per_session(views: pd.DataFrame) -> pd.Series:
    """Page-view count per distinct non-empty session id, first-seen order."""
    sessions = views["session_id"].dropna()
    return sessions.groupby(sessions, sort=False).size()


def session_stats(views: pd.DataFrame) -> Dict:
    sizes = pages_per_session(views)
    total = int(len(sizes))
    if total == 0:
        return {"total_sessions": 0, "avg_pages_per_session": "0", "bounce_rate": 0}

    avg = float(sizes.sum()) / total
    # bounce = a session with exactly one page view
    bounces = int((sizes == 1).sum())
    return {
        "total_sessions": total,
        "avg_pages_per_session": one_decimal(avg),
        "bounce_rate": round_half_up(bounces / total * 100),
    }
