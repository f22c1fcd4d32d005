import math

from app.core.config import settings
from app.services.recommendation.scoring import GapFillingScoring


def calibrate(raw_score: float, max_raw: float | None = None, exponent: float | None = None) -> int:
    """
    Map a raw gap-filling score onto a 0-100 match percentage.

    Raw scores crowd into the lower part of their range, because most groups
    already cover a few roles. A power curve with an exponent below one
    stretches that band across the scale. The mapping is monotonic
    non-decreasing and sends 0 to 0.
    """
    max_raw = GapFillingScoring.max_raw_score() if max_raw is None else max_raw
    exponent = settings.CALIBRATION_EXPONENT if exponent is None else exponent
    if max_raw <= 0 or not math.isfinite(raw_score) or raw_score <= 0:
        return 0
    ratio = min(1.0, raw_score / max_raw)
    return max(0, min(100, round(100 * ratio**exponent)))
