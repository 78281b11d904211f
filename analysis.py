from datetime import datetime, timezone
from math import sqrt

from models import SymptomEntry

TRACKED_SYMPTOM = "fatigue"

COMPARE_VARIABLES = {
    "sleepHours": "Sleep Hours",
    "symptom": "Symptom (yes=1)",
    "exerciseMinutes": "Exercise Minutes",
    "dietQuality": "Diet Quality (1-5)",
}


def _pearson(xs, ys):
    n = len(xs)
    if n < 3:
        return None
    mx, my = sum(xs) / n, sum(ys) / n
    cov = sx = sy = 0.0
    for x, y in zip(xs, ys):
        dx, dy = x - mx, y - my
        cov += dx * dy
        sx += dx * dx
        sy += dy * dy
    den = sqrt(sx * sy)
    return round(cov / den, 2) if den != 0 else None


def _sort_key(e: SymptomEntry):
    """Chronological key; offset-carrying dates compare by their UTC instant."""
    try:
        dt = datetime.fromisoformat(e.date.replace("Z", "+00:00"))
    except ValueError:
        return datetime.max
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _variable(e: SymptomEntry, key: str):
    if key == "sleepHours":
        return e.sleep_hours
    if key == "exerciseMinutes":
        return e.exercise_minutes
    if key == "dietQuality":
        return e.diet_quality
    return 1 if e.mentions(TRACKED_SYMPTOM) else 0


def _trend_rows(entries: list[SymptomEntry]) -> list[dict]:
    """One chart point per entry, oldest first."""
    return [
        {
            "date": e.date[:10],
            "sleep": e.sleep_hours,
            "diet": e.diet_quality,
            "exercise": e.exercise_minutes,
            "fatigue": _variable(e, "symptom"),
        }
        for e in sorted(entries, key=_sort_key)
    ]


def _compare(entries: list[SymptomEntry], var1: str, var2: str) -> dict:
    ordered = sorted(entries, key=_sort_key)
    xs = [_variable(e, var1) for e in ordered]
    ys = [_variable(e, var2) for e in ordered]
    return {
        "var1": {"key": var1, "label": COMPARE_VARIABLES[var1]},
        "var2": {"key": var2, "label": COMPARE_VARIABLES[var2]},
        "points": [
            {"date": e.date[:10], var1: x, var2: y} if var1 != var2 else {"date": e.date[:10], var1: x}
            for e, x, y in zip(ordered, xs, ys)
        ],
        "correlation": _pearson(xs, ys),
    }
