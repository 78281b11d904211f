import html
from typing import Optional

from models import User


def _greeting(user: Optional[User], navigation_source: Optional[str]) -> str:
    """Headline for the dashboard: new accounts get a first hello."""
    first = (user.first_name if user else "") or "User"
    if navigation_source == "signup":
        return f"Nice to meet you, {first}!"
    return f"Welcome back, {first}!"


def _diet_color(q: int) -> str:
    if q <= 2: return "#ef4444"   # red
    if q == 3: return "#eab308"   # yellow
    return "#22c55e"              # green


def _alert(message: str) -> str:
    return f'<div class="alert">{html.escape(message)}</div>' if message else ""


def _tags(values: list[str], color: str = "#0369a1", bg: str = "#f0f9ff", border: str = "#bae6fd") -> str:
    if not values:
        return '<em style="color:#d1d5db;">&mdash;</em>'
    return "".join(
        f'<span style="display:inline-block;background:{bg};border:1px solid {border};'
        f'color:{color};border-radius:20px;padding:2px 10px;font-size:12px;'
        f'font-weight:500;margin:2px 4px 2px 0;">{html.escape(v)}</span>'
        for v in values
    )


def _nav_bar(active: str = "", user: Optional[User] = None) -> str:
    def dlnk(href, label, key):
        """Nav link with active underline indicator."""
        if active == key:
            s = "color:#fff; font-weight:600; border-bottom:2px solid rgba(255,255,255,0.8); padding-bottom:2px;"
        else:
            s = "color:rgba(255,255,255,0.7); font-weight:500;"
        return f'<a href="{href}" style="text-decoration:none; font-size:14px; {s}">{label}</a>'
    who = (
        f'<span style="color:rgba(255,255,255,0.7); font-size:13px;">{html.escape(user.email)}</span>'
        if user else ""
    )
    return (
        '<nav style="background:#1e3a8a;">'
        '<div style="padding:0 24px; height:52px; display:flex; align-items:center; gap:20px;">'
        '<span style="font-weight:800; color:#fff; font-size:15px; flex-shrink:0; margin-right:8px;">'
        'Symptalyze</span>'
        '<div class="nav-links">'
        + dlnk("/dashboard", "Dashboard", "dashboard")
        + dlnk("/trends", "Trends", "trends")
        + dlnk("/medications", "Medications", "meds")
        + '</div>'
        '<div class="nav-actions">'
        + who
        + '<form method="post" action="/logout" style="margin:0;">'
        '<button type="submit" style="background:transparent; border:1px solid rgba(255,255,255,0.4);'
        ' color:rgba(255,255,255,0.7); border-radius:6px; padding:4px 12px;'
        ' font-size:13px; cursor:pointer; font-family:inherit;">Log Out</button>'
        '</form>'
        '</div>'
        '</div>'
        '</nav>'
    )


PAGE_STYLE = """
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <script>
    (function () {
      function setCookie(name, value) {
        document.cookie = name + "=" + encodeURIComponent(value) + "; path=/; max-age=31536000; SameSite=Lax";
      }
      setCookie("tz_offset", String(new Date().getTimezoneOffset()));
    })();
  </script>
  <style>
    body { font-family: system-ui, sans-serif; background: #f5f5f5; margin: 0; padding: 0; color: #222; }
    .container { max-width: 720px; margin: 0 auto; padding: 24px; }
    .container.narrow { max-width: 480px; }
    h1 { margin-bottom: 4px; }
    .subtitle { color: #555; font-size: 14px; margin: 0 0 16px; }
    .card { background: #fff; border: 1px solid #e0e0e0; border-radius: 8px; padding: 16px; margin: 12px 0; }
    .card-header { display: flex; align-items: center; gap: 10px; }
    .badge { width: 36px; height: 36px; border-radius: 50%;
             color: #fff; font-weight: 700; font-size: 15px;
             display: flex; align-items: center; justify-content: center; flex-shrink: 0; }
    .card-name { font-size: 17px; font-weight: 600; }
    .card-ts { font-size: 12px; color: #888; margin-top: 2px; }
    .stat-row { display: flex; gap: 18px; margin-top: 10px; font-size: 13px; color: #444; flex-wrap: wrap; }
    .btn-primary { background: #3b82f6; color: #fff; border: none; border-radius: 8px;
                   padding: 10px 22px; font-size: 15px; cursor: pointer; font-weight: 600; }
    .btn-primary:hover { background: #2563eb; }
    .btn-small { background: none; border: 1px solid #d1d5db; border-radius: 6px;
                 padding: 4px 10px; font-size: 13px; color: #374151; cursor: pointer; }
    .btn-small.danger:hover { background: #fee2e2; border-color: #ef4444; color: #ef4444; }
    .btn-small.taken { background: #dcfce7; border-color: #86efac; color: #15803d; }
    .form-group { margin-bottom: 18px; }
    .form-row { display: flex; gap: 12px; }
    .form-row .form-group { flex: 1; }
    label { display: block; font-weight: 600; font-size: 14px; margin-bottom: 6px; }
    .hint { font-size: 12px; color: #888; margin-top: 4px; }
    input[type=text], input[type=password], input[type=email], input[type=date], input[type=time],
    input[type=number], input[type=datetime-local], select { width: 100%; box-sizing: border-box;
      border: 1px solid #d1d5db; border-radius: 6px; padding: 8px 10px; font-size: 15px; font-family: inherit; }
    input:focus, select:focus { outline: 2px solid #3b82f6; border-color: transparent; }
    input[type=range] { width: 100%; accent-color: #3b82f6; cursor: pointer; }
    .alert { background: #fee2e2; border: 1px solid #fca5a5; color: #b91c1c;
             border-radius: 6px; padding: 10px 14px; margin-bottom: 16px; font-size: 14px; }
    .empty { color: #888; font-style: italic; margin-top: 16px; }
    table.trend { width: 100%; border-collapse: collapse; font-size: 13px; background: #fff; }
    table.trend th, table.trend td { border-bottom: 1px solid #eee; padding: 6px 8px; text-align: left; }
    .nav-links { flex: 1; display: flex; gap: 20px; }
    .nav-actions { display: flex; align-items: center; gap: 16px; flex-shrink: 0; }
    @media (max-width: 640px) {
      .nav-links { gap: 12px; }
      .nav-actions span { display: none; }
      .container { padding: 16px; }
      .form-row { flex-direction: column; gap: 0; }
    }
  </style>
"""
