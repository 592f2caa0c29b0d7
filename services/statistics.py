# services/statistics.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from models.submission import Statistics
from services.grading import GRADES, letter_grade


def aggregate(percentages: Iterable[int]) -> Statistics:
    """Cohort statistics over the stored percentages of one assignment's submissions."""
    values = list(percentages)
    distribution = {grade: 0 for grade in GRADES}
    if not values:
        return Statistics(gradeDistribution=distribution)

    for value in values:
        distribution[letter_grade(value)] += 1

    mean = Decimal(sum(values)) / Decimal(len(values))
    return Statistics(
        totalSubmissions=len(values),
        averagePercentage=float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)),
        highestScore=max(values),
        lowestScore=min(values),
        gradeDistribution=distribution,
    )


def aggregate_submissions(submissions: Iterable[dict]) -> Statistics:
    return aggregate(s["percentage"] for s in submissions)
