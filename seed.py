"""
Seed script: populates demo data for the Jamie Rivera account.

- Safe to run on an install where the account already exists.
- Replaces Jamie's symptom entries and medication list with fresh demo data
  (30 days of entries, four daily medications).
- Does NOT touch other user accounts.
- Leaves nobody logged in.

Usage:
    python3 seed.py
"""

import random
from datetime import date, datetime, timedelta

from config import DB_PATH, _today_local
from db import LocalStorage
from models import Medication, SymptomEntry, User, calculate_age
from session import AuthManager
from storage import KeyedStorage

EMAIL = "jamie@example.com"
PASSWORD = "Demo1234"
BIRTHDAY = "1968-03-14"
TODAY = _today_local()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def ts(d: date, hour: int = 8, minute: int = 0) -> str:
    return datetime(d.year, d.month, d.day, hour, minute).isoformat()


def day(offset: int) -> date:
    return TODAY - timedelta(days=offset)


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

store = LocalStorage(DB_PATH)
auth = AuthManager(store)
storage = KeyedStorage(store)

if any(u.email == EMAIL for u in auth.users):
    print(f"Found existing account: {EMAIL}")
else:
    result = auth.signup(User(
        email=EMAIL,
        password=PASSWORD,
        first_name="Jamie",
        last_name="Rivera",
        name="Jamie Rivera",
        gender="other",
        birthday=BIRTHDAY,
        age=calculate_age(BIRTHDAY, TODAY),
    ))
    if not result.success:
        raise SystemExit(f"Could not create demo account: {result.message}")
    print(f"Created account: {EMAIL}")

# ---------------------------------------------------------------------------
# Symptom entries: 30 days, sleep and fatigue loosely linked
# ---------------------------------------------------------------------------

rng = random.Random(42)  # fixed seed for reproducibility

entries = []
for offset in range(29, -1, -1):
    d = day(offset)
    sleep = round(min(10, max(4, rng.gauss(7, 1.2))) * 2) / 2
    exercise = rng.choice([0, 0, 15, 20, 30, 45, 60])
    diet = max(1, min(5, int(round(rng.gauss(3.4, 0.9)))))

    symptoms = []
    if sleep < 6.5 or rng.random() < 0.15:
        symptoms.append("fatigue")
    if rng.random() < (0.45 if sleep < 6 else 0.2):
        symptoms.append("headache")
    if diet <= 2 and rng.random() < 0.5:
        symptoms.append("nausea")
    if exercise == 0 and rng.random() < 0.3:
        symptoms.append("back pain")

    meds = ["metformin", "lisinopril"]
    if "headache" in symptoms:
        meds.append("ibuprofen")

    entries.append(SymptomEntry(
        date=ts(d, rng.randint(19, 22), rng.randint(0, 59)),
        symptoms=symptoms,
        sleep_hours=sleep,
        diet_quality=diet,
        exercise_minutes=exercise,
        medications=meds,
    ))

storage.save_entries(EMAIL, entries)
print(f"Saved {len(entries)} symptom entries.")

# ---------------------------------------------------------------------------
# Medications with a week of taken / missed history
# ---------------------------------------------------------------------------

schedules = [
    # (name, time, adherence_rate)
    ("Metformin",    "08:00", 0.85),
    ("Lisinopril",   "08:30", 0.90),
    ("Atorvastatin", "21:00", 0.75),
    ("Vitamin D",    "12:00", 0.60),
]

meds = []
for name, time_str, rate in schedules:
    weekly = {day(offset).isoformat(): rng.random() < rate for offset in range(6, 0, -1)}
    meds.append(Medication(name=name, time=time_str, weekly_status=weekly))

storage.save_medications(EMAIL, meds)
print(f"Saved {len(meds)} medications.")

auth.logout()
print(f"\nDone. Log in with email={EMAIL} password={PASSWORD}")
