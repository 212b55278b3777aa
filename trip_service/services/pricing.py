"""
Fare calculation service.
"""
from decimal import Decimal, ROUND_HALF_UP

# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------
BASE_FARE = Decimal("2.00")
RATE_PER_KM = Decimal("1.50")

# Distances are kept to the metre; the cap is the largest value the trips
# table can hold (Numeric(10, 3)). Its fare still fits Numeric(10, 2).
DISTANCE_STEP = Decimal("0.001")
MAX_DISTANCE_KM = Decimal("9999999.999")


# ---------------------------------------------------------------------------
# Fare calculation
# ---------------------------------------------------------------------------

def quantize_distance(distance_km: float | Decimal) -> Decimal:
    """Round a distance half-up to the stored precision."""
    return Decimal(str(distance_km)).quantize(DISTANCE_STEP, rounding=ROUND_HALF_UP)


def calculate_fare(distance_km: float | Decimal) -> Decimal:
    """
    Returns base + per-km fare, rounded half-up to 2 decimal places.
    """
    distance = Decimal(str(distance_km))
    if distance < 0:
        raise ValueError("distance must be non-negative")

    total = BASE_FARE + RATE_PER_KM * distance
    return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
