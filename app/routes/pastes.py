"""
Paste routes.
Handles create, fetch (API), and view (HTML) operations.
"""
import html
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from app.config import settings
from app.exceptions import PasteAccessError
from app.models import PasteResponse, PasteView
from app.store import PasteStore, get_store

router = APIRouter()
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _parse_whole_number(text: str) -> Optional[int]:
    """Parse "1700000000000" or "1.7e12"; None unless the value is a whole number."""
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    return int(value) if value.is_integer() else None


def _get_current_time_ms(x_test_now_ms: Optional[str] = None) -> int:
    """
    Get current time in milliseconds, respecting TEST_MODE for deterministic testing.

    Args:
        x_test_now_ms: Test timestamp header (milliseconds since epoch)

    Returns:
        Milliseconds since epoch
    """
    if settings.TEST_MODE and x_test_now_ms:
        now_ms = _parse_whole_number(x_test_now_ms)
        if now_ms is not None:
            return now_ms
        logger.warning(f"Invalid x-test-now-ms header: {x_test_now_ms!r}")

    return _wall_clock_ms()


def _format_timestamp(timestamp_ms: Optional[int]) -> Optional[str]:
    """Render milliseconds since epoch as ISO 8601 UTC, e.g. 2024-01-01T00:00:00.000Z."""
    if timestamp_ms is None:
        return None
    moment = EPOCH + timedelta(milliseconds=timestamp_ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def _read_payload(request: Request) -> Dict[str, Any]:
    """Read a JSON or form body. Anything unreadable yields an empty payload."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form)

    try:
        payload = await request.json()
    except ValueError as e:
        # JSONDecodeError, UnicodeDecodeError and over-long integer literals
        logger.warning(f"Unreadable paste body: {e}")
        return {}
    return payload if isinstance(payload, dict) else {}


def _paste_url(request: Request, paste_id: str) -> str:
    base_url = settings.APP_DOMAIN or str(request.base_url)
    return f"{base_url.rstrip('/')}/p/{paste_id}"


@router.post("/api/pastes", response_model=PasteResponse, status_code=201)
async def create_paste(
    request: Request,
    store: PasteStore = Depends(get_store),
) -> PasteResponse:
    """
    Create a new paste.

    The body (JSON or form) carries content, optional ttl_seconds and
    optional max_views. Invalid input is answered with 400 by the
    PasteValidationError handler.

    Creation always uses wall-clock time; x-test-now-ms only affects fetches.
    """
    payload = await _read_payload(request)
    paste = store.create(
        payload.get("content"),
        ttl_seconds=payload.get("ttl_seconds"),
        max_views=payload.get("max_views"),
        now_ms=_wall_clock_ms(),
    )
    return PasteResponse(id=paste.id, url=_paste_url(request, paste.id))


@router.get("/api/pastes/{paste_id}", response_model=PasteView)
async def fetch_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    store: PasteStore = Depends(get_store),
) -> PasteView:
    """
    Fetch a paste (API endpoint).
    Each successful fetch counts one view; unavailable pastes are answered
    with 404 by the PasteAccessError handler.
    """
    fetched = store.fetch(paste_id, _get_current_time_ms(x_test_now_ms))
    return PasteView(
        content=fetched.content,
        remaining_views=fetched.remaining_views,
        expires_at=_format_timestamp(fetched.expires_at),
    )


@router.get("/p/{paste_id}", response_class=HTMLResponse)
async def view_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    store: PasteStore = Depends(get_store),
):
    """
    View a paste as HTML.
    Counts a view exactly like the API endpoint. Unavailable pastes get a
    plain-text 404 with the reason.
    """
    try:
        fetched = store.fetch(paste_id, _get_current_time_ms(x_test_now_ms))
    except PasteAccessError as e:
        return PlainTextResponse(e.message, status_code=404)

    return HTMLResponse(_render_paste_page(paste_id, fetched.content))


def _render_paste_page(paste_id: str, content: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Paste - Pastebin Lite</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
            background: #f0f2f7;
            padding: 20px;
        }}
        .container {{
            background: white;
            border-radius: 10px;
            max-width: 900px;
            margin: 0 auto;
            padding: 40px;
        }}
        .paste-id {{
            color: #666;
            font-size: 12px;
            font-family: monospace;
            margin-bottom: 20px;
        }}
        pre {{
            background: #f5f5f5;
            border: 1px solid #ddd;
            border-radius: 5px;
            padding: 20px;
            white-space: pre-wrap;
            word-wrap: break-word;
        }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Pastebin Lite</h1>
        <div class="paste-id">ID: {html.escape(paste_id)}</div>
        <pre>{html.escape(content)}</pre>
        <p><a href="/">Create a new paste</a></p>
    </div>
</body>
</html>"""
