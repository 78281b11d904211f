import html
import logging
from datetime import date, timedelta
from typing import Optional, Tuple
from urllib.parse import quote_plus

from fastapi import APIRouter, Body, Depends, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from config import _today_local
from deps import get_current_user, get_storage
from models import Medication, User, is_valid_time
from storage import KeyedStorage
from ui import PAGE_STYLE, _alert, _nav_bar

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_MED_NAME_LEN = 120
WEEK_DAYS = 7


def _validate_medication(name: str, time_str: str) -> Tuple[Optional[str], Optional[Medication]]:
    if not isinstance(name, str) or not name.strip():
        return ("Medication name is required", None)
    if len(name.strip()) > MAX_MED_NAME_LEN:
        return (f"Medication name must be {MAX_MED_NAME_LEN} characters or fewer", None)
    if not isinstance(time_str, str) or not is_valid_time(time_str.strip()):
        return ("Time must be in HH:MM format", None)
    return (None, Medication(name=name.strip(), time=time_str.strip()))


def _parse_status_date(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        return None


def _find(meds: list[Medication], med_id: str) -> Optional[Medication]:
    return next((m for m in meds if m.id == med_id), None)


def _toggle(med: Medication, today: str):
    med.taken_today = not med.taken_today
    med.weekly_status[today] = med.taken_today


def _set_status(med: Medication, day: str, taken: Optional[bool], today: str):
    med.weekly_status[day] = taken
    if day == today:
        med.taken_today = taken is True


def _week(today: date) -> list[date]:
    return [today - timedelta(days=offset) for offset in range(WEEK_DAYS - 1, -1, -1)]


def _week_cells(med: Medication, week: list[date]) -> str:
    cells = []
    for d in week:
        key = d.isoformat()
        status = med.weekly_status.get(key)
        if status is True:
            mark, bg, nxt = "&#10003;", "#dcfce7", "false"
        elif status is False:
            mark, bg, nxt = "&#10007;", "#fee2e2", ""
        else:
            mark, bg, nxt = "&ndash;", "#f9fafb", "true"
        cells.append(
            f'<form method="post" action="/medications/{html.escape(med.id)}/status" style="margin:0;">'
            f'<input type="hidden" name="day" value="{key}">'
            f'<input type="hidden" name="taken" value="{nxt}">'
            f'<button type="submit" title="{key}" style="width:34px;height:34px;border:1px solid #e5e7eb;'
            f'border-radius:6px;background:{bg};cursor:pointer;font-size:13px;">{mark}</button>'
            f'</form>'
        )
    return "".join(cells)


@router.get("/medications", response_class=HTMLResponse)
def medications_list(
    error: str = "",
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    meds = storage.load_medications(user.email)
    week = _week(_today_local())
    header = "".join(
        f'<div style="width:34px;text-align:center;font-size:11px;color:#9ca3af;">{d.strftime("%a")}</div>'
        for d in week
    )
    if meds:
        cards = ""
        for m in sorted(meds, key=lambda m: m.time):
            mid = html.escape(m.id)
            taken_cls = "btn-small taken" if m.taken_today else "btn-small"
            cards += f"""
    <div class="card" style="{'background:#f0fdf4;border-color:#bbf7d0;' if m.taken_today else ''}">
      <div style="display:flex;justify-content:space-between;align-items:center;gap:10px;flex-wrap:wrap;">
        <div>
          <div class="card-name">{html.escape(m.name)}</div>
          <div class="card-ts">Take at {html.escape(m.time)}</div>
        </div>
        <div style="display:flex;gap:8px;">
          <form method="post" action="/medications/{mid}/toggle" style="margin:0;">
            <button type="submit" class="{taken_cls}">{"&#10003; Taken today" if m.taken_today else "Mark taken"}</button>
          </form>
          <form method="post" action="/medications/{mid}/remove" style="margin:0;">
            <button type="submit" class="btn-small danger">Remove</button>
          </form>
        </div>
      </div>
      <div style="display:flex;gap:4px;margin-top:12px;">{header}</div>
      <div style="display:flex;gap:4px;margin-top:4px;">{_week_cells(m, week)}</div>
    </div>"""
    else:
        cards = '<p class="empty">No medications added yet. Add your medications above to start tracking them.</p>'
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Medications</title></head>
<body>
  {_nav_bar('meds', user)}
  <div class="container">
    <h1>Medication Tracker</h1>
    <p class="subtitle">Track your daily medications and mark when taken</p>
    {_alert(error)}
    <div class="card">
      <form method="post" action="/medications" class="form-row" style="align-items:flex-end;">
        <div class="form-group" style="flex:2;">
          <label for="name">Medication name</label>
          <input type="text" id="name" name="name" placeholder="e.g., Metformin, Vitamin D" required>
        </div>
        <div class="form-group">
          <label for="time">Time to take</label>
          <input type="time" id="time" name="time" required>
        </div>
        <div class="form-group">
          <button type="submit" class="btn-primary" style="width:100%;">Add</button>
        </div>
      </form>
    </div>
    {cards}
  </div>
</body>
</html>
"""


@router.post("/medications")
def medications_create(
    name: str = Form(""),
    time: str = Form(""),
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    error, med = _validate_medication(name, time)
    if error:
        return RedirectResponse(url=f"/medications?error={quote_plus(error)}", status_code=303)
    meds = storage.load_medications(user.email)
    meds.append(med)
    storage.save_medications(user.email, meds)
    return RedirectResponse(url="/medications", status_code=303)


@router.post("/medications/{med_id}/toggle")
def medications_toggle(
    med_id: str,
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    meds = storage.load_medications(user.email)
    med = _find(meds, med_id)
    if med:
        _toggle(med, _today_local().isoformat())
        storage.save_medications(user.email, meds)
    return RedirectResponse(url="/medications", status_code=303)


@router.post("/medications/{med_id}/status")
def medications_status(
    med_id: str,
    day: str = Form(""),
    taken: str = Form(""),
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    status_day = _parse_status_date(day)
    if status_day is None:
        return RedirectResponse(url="/medications?error=Invalid+date", status_code=303)
    meds = storage.load_medications(user.email)
    med = _find(meds, med_id)
    if med:
        value = {"true": True, "false": False}.get(taken.strip().lower())
        _set_status(med, status_day, value, _today_local().isoformat())
        storage.save_medications(user.email, meds)
    return RedirectResponse(url="/medications", status_code=303)


@router.post("/medications/{med_id}/remove")
def medications_remove(
    med_id: str,
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    meds = storage.load_medications(user.email)
    remaining = [m for m in meds if m.id != med_id]
    if len(remaining) != len(meds):
        storage.save_medications(user.email, remaining)
    return RedirectResponse(url="/medications", status_code=303)


# ── JSON API ──────────────────────────────────────────────────────────────────

def _not_found() -> JSONResponse:
    return JSONResponse({"error": "medication not found"}, status_code=404)


@router.get("/api/medications")
def api_medications(
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    meds = storage.load_medications(user.email)
    return JSONResponse({"medications": [m.to_dict() for m in meds]})


@router.post("/api/medications")
def api_medications_create(
    payload: dict = Body(...),
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    error, med = _validate_medication(payload.get("name"), payload.get("time"))
    if error:
        return JSONResponse({"error": error}, status_code=400)
    meds = storage.load_medications(user.email)
    meds.append(med)
    storage.save_medications(user.email, meds)
    return JSONResponse({"ok": True, "medication": med.to_dict()})


@router.post("/api/medications/{med_id}/toggle")
def api_medications_toggle(
    med_id: str,
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    meds = storage.load_medications(user.email)
    med = _find(meds, med_id)
    if med is None:
        return _not_found()
    _toggle(med, _today_local().isoformat())
    storage.save_medications(user.email, meds)
    return JSONResponse({"ok": True, "medication": med.to_dict()})


@router.post("/api/medications/{med_id}/status")
def api_medications_status(
    med_id: str,
    payload: dict = Body(...),
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    status_day = _parse_status_date(payload.get("date"))
    if status_day is None:
        return JSONResponse({"error": "date must be YYYY-MM-DD"}, status_code=400)
    taken = payload.get("taken")
    if taken is not None and not isinstance(taken, bool):
        return JSONResponse({"error": "taken must be true, false or null"}, status_code=400)
    meds = storage.load_medications(user.email)
    med = _find(meds, med_id)
    if med is None:
        return _not_found()
    _set_status(med, status_day, taken, _today_local().isoformat())
    storage.save_medications(user.email, meds)
    return JSONResponse({"ok": True, "medication": med.to_dict()})


@router.delete("/api/medications/{med_id}")
def api_medications_delete(
    med_id: str,
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    meds = storage.load_medications(user.email)
    remaining = [m for m in meds if m.id != med_id]
    if len(remaining) == len(meds):
        return _not_found()
    storage.save_medications(user.email, remaining)
    logger.info("Removed medication %s", med_id)
    return JSONResponse({"ok": True})
