import logging
import re
from datetime import datetime
from typing import Optional, Tuple
from urllib.parse import quote_plus

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from config import MIN_SIGNUP_AGE, _today_local
from deps import get_auth
from models import GENDERS, User, calculate_age
from security import _client_ip, _is_login_allowed, _is_signup_allowed
from session import AuthManager
from ui import PAGE_STYLE, _alert

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_NAME_LEN = 80


def _validate_password(password: str) -> Optional[str]:
    if len(password) < 8:
        return "Password must be at least 8 characters"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"\d", password):
        return "Password must contain at least one number"
    return None


def _validate_signup(
    first_name: str,
    last_name: str,
    gender: str,
    birthday: str,
    email: str,
    password: str,
    confirm_password: str,
) -> Tuple[Optional[str], Optional[User]]:
    first_name, last_name, email = first_name.strip(), last_name.strip(), email.strip()
    if not first_name or not last_name:
        return ("First and last name are required", None)
    if len(first_name) > MAX_NAME_LEN or len(last_name) > MAX_NAME_LEN:
        return (f"Names must be {MAX_NAME_LEN} characters or fewer", None)
    if not EMAIL_RE.match(email):
        return ("Please enter a valid email address", None)
    pw_error = _validate_password(password)
    if pw_error:
        return (pw_error, None)
    if password != confirm_password:
        return ("Passwords do not match", None)
    if gender not in GENDERS:
        return ("Please select your gender", None)
    try:
        age = calculate_age(birthday, _today_local())
    except ValueError:
        return ("Please enter your birthday", None)
    if datetime.strptime(birthday, "%Y-%m-%d").date() > _today_local():
        return ("Birthday cannot be in the future", None)
    if age < MIN_SIGNUP_AGE:
        return (f"You must be {MIN_SIGNUP_AGE} years or older", None)
    return (None, User(
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        name=f"{first_name} {last_name}",
        gender=gender,
        birthday=birthday,
        age=age,
    ))


@router.get("/", response_class=HTMLResponse)
def landing(auth: AuthManager = Depends(get_auth)):
    if auth.current_user:
        return RedirectResponse(url="/dashboard", status_code=303)
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Symptalyze</title></head>
<body>
  <div class="container narrow" style="text-align:center; padding-top:60px;">
    <h1>Symptalyze</h1>
    <p class="subtitle">Track your symptoms, sleep, diet, exercise and medications,
      and see how they move together over time.</p>
    <p style="margin-top:28px;">
      <a href="/signup" class="btn-primary" style="text-decoration:none; display:inline-block;">Create Account</a>
    </p>
    <p style="font-size:14px; color:#6b7280;">
      Already have an account? <a href="/login" style="color:#3b82f6;">Log in</a>
    </p>
  </div>
</body>
</html>
"""


@router.get("/signup", response_class=HTMLResponse)
def signup_get(error: str = ""):
    gender_options = "".join(
        f'<option value="{g}">{g.capitalize()}</option>' for g in GENDERS
    )
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Create Account</title></head>
<body>
  <div class="container narrow">
    <h1>Create Account</h1>
    <p class="subtitle">Your data stays on this device, keyed to your email.</p>
    {_alert(error)}
    <form method="post" action="/signup">
      <div class="form-row">
        <div class="form-group">
          <label for="first_name">First name</label>
          <input type="text" id="first_name" name="first_name" required autocomplete="given-name">
        </div>
        <div class="form-group">
          <label for="last_name">Last name</label>
          <input type="text" id="last_name" name="last_name" required autocomplete="family-name">
        </div>
      </div>
      <div class="form-row">
        <div class="form-group">
          <label for="gender">Gender</label>
          <select id="gender" name="gender" required>
            <option value="">Select&hellip;</option>{gender_options}
          </select>
        </div>
        <div class="form-group">
          <label for="birthday">Birthday</label>
          <input type="date" id="birthday" name="birthday" required>
        </div>
      </div>
      <div class="form-group">
        <label for="email">Email</label>
        <input type="email" id="email" name="email" required autocomplete="email"
          placeholder="you@example.com">
      </div>
      <div class="form-group">
        <label for="password">Password</label>
        <input type="password" id="password" name="password" required autocomplete="new-password"
          placeholder="At least 8 characters">
        <p class="hint">Use upper and lower case letters and at least one number.</p>
      </div>
      <div class="form-group">
        <label for="confirm_password">Confirm password</label>
        <input type="password" id="confirm_password" name="confirm_password" required
          autocomplete="new-password">
      </div>
      <button type="submit" class="btn-primary">Create Account</button>
    </form>
    <p style="margin-top:16px; font-size:13px; color:#6b7280;">
      Already registered? <a href="/login" style="color:#3b82f6;">Log in</a>
    </p>
  </div>
</body>
</html>
"""


@router.post("/signup")
def signup_post(
    request: Request,
    first_name: str = Form(""),
    last_name: str = Form(""),
    gender: str = Form(""),
    birthday: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    auth: AuthManager = Depends(get_auth),
):
    ip = _client_ip(request)
    if not _is_signup_allowed(ip):
        logger.warning("Signup rate limit hit for %s", ip)
        return RedirectResponse(url="/signup?error=Too+many+attempts.+Please+wait+before+trying+again.", status_code=303)
    error, user = _validate_signup(
        first_name, last_name, gender, birthday, email, password, confirm_password
    )
    if error:
        return RedirectResponse(url=f"/signup?error={quote_plus(error)}", status_code=303)
    result = auth.signup(user)
    if not result.success:
        return RedirectResponse(url=f"/signup?error={quote_plus(result.message)}", status_code=303)
    return RedirectResponse(url="/dashboard", status_code=303)


@router.get("/login", response_class=HTMLResponse)
def login_get(error: str = "", auth: AuthManager = Depends(get_auth)):
    if not auth.users:
        return RedirectResponse(url="/signup", status_code=303)
    if auth.current_user:
        return RedirectResponse(url="/dashboard", status_code=303)
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Log In</title></head>
<body>
  <div class="container narrow">
    <h1>Welcome Back</h1>
    <p class="subtitle">Enter your credentials to continue.</p>
    {_alert(error)}
    <form method="post" action="/login">
      <div class="form-group">
        <label for="email">Email</label>
        <input type="email" id="email" name="email" required autocomplete="email">
      </div>
      <div class="form-group">
        <label for="password">Password</label>
        <input type="password" id="password" name="password" required autocomplete="current-password">
      </div>
      <button type="submit" class="btn-primary">Log In</button>
    </form>
    <p style="margin-top:16px; font-size:13px; color:#6b7280;">
      No account yet? <a href="/signup" style="color:#3b82f6;">Sign up</a>
    </p>
  </div>
</body>
</html>
"""


@router.post("/login")
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    auth: AuthManager = Depends(get_auth),
):
    ip = _client_ip(request)
    if not _is_login_allowed(ip):
        logger.warning("Login rate limit hit for %s", ip)
        return RedirectResponse(url="/login?error=Too+many+attempts.+Please+wait+before+trying+again.", status_code=303)
    result = auth.login(email.strip(), password)
    if not result.success:
        return RedirectResponse(url=f"/login?error={quote_plus(result.message)}", status_code=303)
    return RedirectResponse(url="/dashboard", status_code=303)


@router.post("/logout")
def logout(auth: AuthManager = Depends(get_auth)):
    auth.logout()
    return RedirectResponse(url="/login", status_code=303)


@router.get("/api/session")
def api_session(auth: AuthManager = Depends(get_auth)):
    user = auth.current_user
    return JSONResponse({
        "currentUser": user.public_dict() if user else None,
        "navigationSource": auth.navigation_source,
        "userCount": len(auth.users),
    })
