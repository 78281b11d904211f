import html
from datetime import datetime
from typing import Optional, Tuple
from urllib.parse import quote_plus

from fastapi import APIRouter, Body, Depends, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from analysis import _sort_key
from config import _now_local
from deps import get_auth, get_current_user, get_storage
from models import SymptomEntry, User
from session import AuthManager
from storage import KeyedStorage
from ui import PAGE_STYLE, _alert, _diet_color, _greeting, _nav_bar, _tags

router = APIRouter()

MAX_SLEEP_HOURS = 24
MAX_ITEMS = 30
MAX_ITEM_LEN = 80


def _split_list(value) -> list[str]:
    """Comma-separated text (or an already split list) to trimmed, non-empty items."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ValueError
    items = []
    for v in value:
        if not isinstance(v, str):
            raise ValueError
        v = v.strip()
        if v:
            items.append(v)
    return items


def _number(value) -> float:
    if isinstance(value, bool):
        raise ValueError
    try:
        n = float(value)
    except OverflowError:
        raise ValueError
    if n != n or n in (float("inf"), float("-inf")):
        raise ValueError
    return int(n) if n.is_integer() else n


def _parse_entry_date(value: str) -> Optional[str]:
    if not value or not value.strip():
        return _now_local().replace(microsecond=0).isoformat()
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).isoformat()
    except ValueError:
        return None


def _validate_entry(
    symptoms,
    sleep_hours,
    diet_quality,
    exercise_minutes,
    medications,
    entry_date: str,
) -> Tuple[Optional[str], Optional[SymptomEntry]]:
    try:
        symptom_list = _split_list(symptoms)
    except ValueError:
        return ("Symptoms must be text", None)
    try:
        med_list = _split_list(medications)
    except ValueError:
        return ("Medications must be text", None)
    if len(symptom_list) > MAX_ITEMS or len(med_list) > MAX_ITEMS:
        return (f"Enter at most {MAX_ITEMS} symptoms and {MAX_ITEMS} medications", None)
    if any(len(s) > MAX_ITEM_LEN for s in symptom_list + med_list):
        return (f"Each symptom or medication must be {MAX_ITEM_LEN} characters or fewer", None)
    try:
        sleep = _number(sleep_hours)
    except (TypeError, ValueError):
        return ("Sleep hours must be a number", None)
    if not (0 <= sleep <= MAX_SLEEP_HOURS):
        return (f"Sleep hours must be between 0 and {MAX_SLEEP_HOURS}", None)
    try:
        diet = _number(diet_quality)
    except (TypeError, ValueError):
        return ("Diet quality must be a number", None)
    if not isinstance(diet, int) or not (1 <= diet <= 5):
        return ("Diet quality must be a whole number from 1 to 5", None)
    try:
        exercise = _number(exercise_minutes)
    except (TypeError, ValueError):
        return ("Exercise minutes must be a number", None)
    if exercise < 0:
        return ("Exercise minutes cannot be negative", None)
    date_str = _parse_entry_date(entry_date) if isinstance(entry_date, str) else None
    if date_str is None:
        return ("Invalid date format", None)
    return (None, SymptomEntry(
        date=date_str,
        symptoms=symptom_list,
        sleep_hours=sleep,
        diet_quality=diet,
        exercise_minutes=exercise,
        medications=med_list,
    ))


def _entry_card(e: SymptomEntry) -> str:
    try:
        when = datetime.fromisoformat(e.date).strftime("%b %-d, %Y %H:%M")
    except ValueError:
        when = e.date
    return f"""
    <div class="card">
      <div class="card-header">
        <div class="badge" style="background:{_diet_color(e.diet_quality)}">{e.diet_quality}</div>
        <div>
          <div class="card-name">{len(e.symptoms)} symptom{"" if len(e.symptoms) == 1 else "s"}</div>
          <div class="card-ts">{html.escape(when)}</div>
        </div>
      </div>
      <div style="margin-top:10px;">{_tags(e.symptoms)}</div>
      <div class="stat-row">
        <span>&#128564; {e.sleep_hours} h sleep</span>
        <span>&#127822; diet {e.diet_quality}/5</span>
        <span>&#127939; {e.exercise_minutes} min exercise</span>
      </div>
      {"<div style='margin-top:8px;'>" + _tags(e.medications, "#6d28d9", "#f5f3ff", "#ddd6fe") + "</div>" if e.medications else ""}
    </div>"""


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(
    error: str = "",
    auth: AuthManager = Depends(get_auth),
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    entries = sorted(storage.load_entries(user.email), key=_sort_key, reverse=True)
    if entries:
        entry_list = "".join(_entry_card(e) for e in entries)
    else:
        entry_list = '<p class="empty">No entries yet. Add your first one above.</p>'
    now_str = _now_local().strftime("%Y-%m-%dT%H:%M")
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Dashboard</title></head>
<body>
  {_nav_bar('dashboard', user)}
  <div class="container">
    <h1>{html.escape(_greeting(user, auth.navigation_source))}</h1>
    <p class="subtitle">Track your health and symptoms to better understand your patterns</p>
    {_alert(error)}
    <div class="card">
      <h2 style="margin-top:0; font-size:18px;">Add New Entry</h2>
      <form method="post" action="/entries">
        <div class="form-group">
          <label for="symptoms">Symptoms</label>
          <input type="text" id="symptoms" name="symptoms" placeholder="e.g., headache, fatigue, nausea">
          <p class="hint">Separate multiple symptoms with commas</p>
        </div>
        <div class="form-row">
          <div class="form-group">
            <label for="sleep_hours">Sleep hours</label>
            <input type="number" id="sleep_hours" name="sleep_hours" min="0" max="24" step="0.5" value="8">
          </div>
          <div class="form-group">
            <label for="exercise_minutes">Exercise minutes</label>
            <input type="number" id="exercise_minutes" name="exercise_minutes" min="0" value="0">
          </div>
        </div>
        <div class="form-group">
          <label for="diet_quality">Diet quality <span id="diet-v" style="color:#3b82f6;">3</span></label>
          <input type="range" id="diet_quality" name="diet_quality" min="1" max="5" value="3"
                 oninput="document.getElementById('diet-v').textContent=this.value">
          <div class="hint" style="display:flex; justify-content:space-between;"><span>Poor</span><span>Excellent</span></div>
        </div>
        <div class="form-group">
          <label for="medications">Medications</label>
          <input type="text" id="medications" name="medications" placeholder="e.g., ibuprofen, vitamin D">
          <p class="hint">Separate multiple medications with commas</p>
        </div>
        <div class="form-group">
          <label for="entry_date">Date &amp; time</label>
          <input type="datetime-local" id="entry_date" name="entry_date" value="{now_str}" style="width:auto;">
        </div>
        <button type="submit" class="btn-primary">Add Entry</button>
      </form>
    </div>
    <h2 style="font-size:18px; margin-top:28px;">Your Entries ({len(entries)})</h2>
    {entry_list}
  </div>
</body>
</html>
"""


@router.post("/entries")
def entries_create(
    symptoms: str = Form(""),
    sleep_hours: str = Form("8"),
    diet_quality: str = Form("3"),
    exercise_minutes: str = Form("0"),
    medications: str = Form(""),
    entry_date: str = Form(""),
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    error, entry = _validate_entry(
        symptoms, sleep_hours, diet_quality, exercise_minutes, medications, entry_date
    )
    if error:
        return RedirectResponse(url=f"/dashboard?error={quote_plus(error)}", status_code=303)
    storage.append_entry(user.email, entry)
    return RedirectResponse(url="/dashboard", status_code=303)


@router.get("/api/entries")
def api_entries(
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    entries = storage.load_entries(user.email)
    return JSONResponse({"entries": [e.to_dict() for e in entries]})


@router.post("/api/entries")
def api_entries_create(
    payload: dict = Body(...),
    user: User = Depends(get_current_user),
    storage: KeyedStorage = Depends(get_storage),
):
    error, entry = _validate_entry(
        payload.get("symptoms"),
        payload.get("sleepHours", 8),
        payload.get("dietQuality", 3),
        payload.get("exerciseMinutes", 0),
        payload.get("medications"),
        payload.get("date") or "",
    )
    if error:
        return JSONResponse({"error": error}, status_code=400)
    storage.append_entry(user.email, entry)
    return JSONResponse({"ok": True, "entry": entry.to_dict()})
