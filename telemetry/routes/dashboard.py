"""
Operator dashboard — a single self-refreshing HTML page summarising the
aggregate counters.

  GET /admin
"""
from datetime import datetime
from html import escape
from string import Template

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from telemetry.dependencies import get_aggregator, get_uptime_seconds
from telemetry.services.aggregator import Aggregator

router = APIRouter(tags=["dashboard"])

# Browser reloads the page on this interval (ms)
AUTO_REFRESH_MS = 30_000

_PAGE = Template("""\
<!DOCTYPE html>
<html>
<head>
    <title>Telemetry Analytics Dashboard</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 0;
            padding: 20px;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            color: #333;
        }
        .container {
            max-width: 1200px;
            margin: 0 auto;
            background: white;
            border-radius: 15px;
            padding: 30px;
            box-shadow: 0 10px 30px rgba(0,0,0,0.2);
        }
        h1 { text-align: center; color: #4F46E5; margin-bottom: 30px; }
        .stats-grid {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(250px, 1fr));
            gap: 20px;
            margin-bottom: 30px;
        }
        .stat-card {
            background: linear-gradient(135deg, #667eea, #764ba2);
            color: white;
            padding: 25px;
            border-radius: 15px;
            text-align: center;
            box-shadow: 0 5px 15px rgba(0,0,0,0.1);
        }
        .stat-number { font-size: 36px; font-weight: bold; margin-bottom: 10px; }
        .stat-label { font-size: 16px; opacity: 0.9; }
        .refresh-btn {
            background: #4F46E5;
            color: white;
            border: none;
            padding: 12px 24px;
            border-radius: 8px;
            font-size: 16px;
            cursor: pointer;
            margin: 20px auto;
            display: block;
        }
        .refresh-btn:hover { background: #3730a3; }
        .last-updated { text-align: center; color: #666; font-size: 14px; margin-top: 20px; }
        .status-indicator {
            display: inline-block;
            width: 12px;
            height: 12px;
            border-radius: 50%;
            background: #10b981;
            margin-right: 8px;
            animation: pulse 2s infinite;
        }
        @keyframes pulse { 0% { opacity: 1; } 50% { opacity: 0.5; } 100% { opacity: 1; } }
    </style>
</head>
<body>
    <div class="container">
        <h1><span class="status-indicator"></span>Telemetry Analytics Dashboard</h1>
        <div class="stats-grid">
$cards
        </div>
        <button class="refresh-btn" onclick="location.reload()">Refresh Data</button>
        <div class="last-updated">
            Last updated: $last_updated
            <br>
            Server uptime: $uptime_minutes minutes
        </div>
    </div>
    <script>
        setTimeout(() => { location.reload(); }, $refresh_ms);
    </script>
</body>
</html>
""")

_CARD = Template("""\
            <div class="stat-card">
                <div class="stat-number">$value</div>
                <div class="stat-label">$label</div>
            </div>""")


def render_dashboard(
    cards: list[tuple[str, int]],
    uptime_seconds: float,
    now: datetime | None = None,
) -> str:
    """Render the dashboard page from ``(label, value)`` pairs."""
    now = now or datetime.now()
    return _PAGE.substitute(
        cards="\n".join(
            _CARD.substitute(value=escape(str(value)), label=escape(label))
            for label, value in cards
        ),
        last_updated=escape(now.strftime("%Y-%m-%d %H:%M:%S")),
        uptime_minutes=int(uptime_seconds // 60),
        refresh_ms=AUTO_REFRESH_MS,
    )


@router.get("/admin", response_class=HTMLResponse)
def admin_dashboard(
    aggregator: Aggregator = Depends(get_aggregator),
    uptime: float = Depends(get_uptime_seconds),
) -> HTMLResponse:
    view = aggregator.snapshot()
    cards = [
        ("Total Entries", view.total_entries),
        ("Total Users", view.total_users),
        ("Active Users (30 min)", view.active_users),
        ("Today's Entries", view.today.entries),
        ("Today's Active Users", view.today.unique_users),
    ]
    return HTMLResponse(render_dashboard(cards, uptime))
