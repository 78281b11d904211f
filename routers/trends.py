import html

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, JSONResponse

from analysis import COMPARE_VARIABLES, _compare, _trend_rows
from deps import get_current_user, get_storage
from models import User
from storage import KeyedStorage
from ui import PAGE_STYLE, _nav_bar

router = APIRouter()


def _corr_text(r) -> str:
    if r is None:
        return "Not enough varied data yet (need at least 3 entries)"
    strength = "strong" if abs(r) >= 0.7 else "moderate" if abs(r) >= 0.4 else "weak"
    direction = "positive" if r > 0 else "negative" if r < 0 else "no"
    return f"r = {r:+.2f} ({strength} {direction} correlation)"


@router.get("/trends", response_class=HTMLResponse)
def trends_page(
    var1: str = "sleepHours",
    var2: str = "exerciseMinutes",
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    if var1 not in COMPARE_VARIABLES:
        var1 = "sleepHours"
    if var2 not in COMPARE_VARIABLES:
        var2 = "exerciseMinutes"
    entries = storage.load_entries(user.email)
    rows = _trend_rows(entries)

    def options(selected):
        return "".join(
            f'<option value="{k}"{" selected" if k == selected else ""}>{html.escape(label)}</option>'
            for k, label in COMPARE_VARIABLES.items()
        )

    if rows:
        body_rows = "".join(
            f"<tr><td>{html.escape(r['date'])}</td><td>{r['sleep']}</td><td>{r['diet']}</td>"
            f"<td>{r['exercise']}</td><td>{'yes' if r['fatigue'] else ''}</td></tr>"
            for r in rows
        )
        table = f"""
    <table class="trend">
      <thead><tr><th>Date</th><th>Sleep (h)</th><th>Diet (1-5)</th><th>Exercise (min)</th><th>Fatigue</th></tr></thead>
      <tbody>{body_rows}</tbody>
    </table>"""
        comparison = _compare(entries, var1, var2)
        compare_block = f'<p style="font-size:14px; margin:12px 0 0;">{html.escape(_corr_text(comparison["correlation"]))}</p>'
    else:
        table = '<p class="empty">No data to display. Add some entries to see your health trends!</p>'
        compare_block = ""

    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Trends</title></head>
<body>
  {_nav_bar('trends', user)}
  <div class="container">
    <h1>Health Trends</h1>
    <p class="subtitle">Track your sleep, diet, and exercise patterns over time</p>
    <div class="card">
      <h2 style="margin-top:0; font-size:18px;">Variable Comparison</h2>
      <form method="get" action="/trends" class="form-row" style="align-items:flex-end;">
        <div class="form-group">
          <label for="var1">First variable</label>
          <select id="var1" name="var1">{options(var1)}</select>
        </div>
        <div class="form-group">
          <label for="var2">Second variable</label>
          <select id="var2" name="var2">{options(var2)}</select>
        </div>
        <div class="form-group">
          <button type="submit" class="btn-primary">Compare</button>
        </div>
      </form>
      {compare_block}
    </div>
    {table}
  </div>
</body>
</html>
"""


@router.get("/api/trends")
def api_trends(
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    return JSONResponse({"points": _trend_rows(storage.load_entries(user.email))})


@router.get("/api/trends/compare")
def api_trends_compare(
    var1: str = "sleepHours",
    var2: str = "exerciseMinutes",
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    bad = [v for v in (var1, var2) if v not in COMPARE_VARIABLES]
    if bad:
        return JSONResponse(
            {"error": f"unknown variable {bad[0]!r}; choose from {', '.join(COMPARE_VARIABLES)}"},
            status_code=400,
        )
    return JSONResponse(_compare(storage.load_entries(user.email), var1, var2))
