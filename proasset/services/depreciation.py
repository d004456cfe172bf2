from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from proasset.schemas import DepreciationResult

DAYS_PER_YEAR = 365.25


def round_half_up(value: float, places: int = 0) -> float:
    """Round with halves going up: 2.5 -> 3, 0.25 -> 0.3."""
    exp = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exp, rounding=ROUND_HALF_UP))


def calculate_depreciation(
    price: float, purchase_date: date, useful_life_years: int, today: date | None = None
) -> DepreciationResult:
    """Straight-line depreciation as of ``today``.

    Age is the absolute distance between the two dates, so a purchase date in
    the future still ages the asset. The current value never drops below 0.
    """
    if not useful_life_years or useful_life_years <= 0:
        return DepreciationResult(current_value=int(round_half_up(price)), depreciation_per_year=0, age_years=0)

    today = today or date.today()
    age_years = abs((today - purchase_date).days) / DAYS_PER_YEAR

    per_year = price / useful_life_years
    current = price - per_year * age_years
    if current < 0:
        current = 0

    return DepreciationResult(
        current_value=int(round_half_up(current)),
        depreciation_per_year=int(round_half_up(per_year)),
        age_years=round_half_up(age_years, 1),
    )
