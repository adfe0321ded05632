import asyncio
import json
import logging
import math
import time
import uuid
from typing import Any, Dict, NamedTuple, Optional, Tuple
from urllib.parse import urlencode

import azure.functions as func
import httpx

from .settings import load_settings

logger = logging.getLogger("sheets_relay")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded;charset=UTF-8"
# Apps Script executions can run for tens of seconds; this is the only bound on a call.
UPSTREAM_TIMEOUT_S = 60.0

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


class UpstreamBody(NamedTuple):
    data: Any
    wrapped: bool


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _finite_float(literal: str) -> Any:
    # Out-of-range literals like 1e400 overflow to inf; JSON has no spelling for that.
    value = float(literal)
    return value if math.isfinite(value) else None


def parse_or_wrap(text: str) -> UpstreamBody:
    """Parse upstream text as JSON, or wrap it as ``{"status": "error", "data": text}``."""
    try:
        data = json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)
        return UpstreamBody(data, False)
    except ValueError:
        return UpstreamBody({"status": "error", "data": text}, True)


def read_envelope(body: bytes) -> Tuple[str, Any]:
    """Extract ``(action, payload)`` from a JSON request body.

    Raises ValueError when the body is not a JSON object with a string action.
    """
    envelope = json.loads(body, parse_constant=_reject_constant, parse_float=_finite_float)
    if not isinstance(envelope, dict):
        raise ValueError("Request body must be a JSON object")
    action = envelope.get("action")
    if not isinstance(action, str):
        raise ValueError("Request body must contain a string 'action'")
    return action, envelope.get("payload")


def encode_envelope(action: str, payload: Any) -> str:
    return urlencode(
        [
            ("action", action),
            ("payload", json.dumps(payload, allow_nan=False, separators=(",", ":"))),
        ]
    )


def _json_response(status: int, data: Any, headers: Dict[str, str]) -> func.HttpResponse:
    hdrs = {"Content-Type": "application/json"}
    hdrs.update(headers)
    body = json.dumps(data, allow_nan=False, separators=(",", ":"))
    return func.HttpResponse(status_code=status, mimetype="application/json", body=body, headers=hdrs)


def _sanitize_headers(h: Dict[str, str]) -> Dict[str, str]:
    masked = {}
    for k, v in h.items():
        if k.lower() in ("authorization", "cookie", "x-functions-key"):
            masked[k] = "***"
        else:
            masked[k] = v
    return masked


async def forward_action(
    req: func.HttpRequest,
    upstream_url: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> func.HttpResponse:
    method = (req.method or "").upper()
    if method == "OPTIONS":
        hdrs = {"Content-Type": "application/json"}
        hdrs.update(CORS_HEADERS)
        return func.HttpResponse(status_code=204, mimetype="application/json", headers=hdrs)
    if method != "POST":
        return _json_response(
            405,
            {"error": "Method not allowed"},
            {"Access-Control-Allow-Origin": "*", "Allow": "POST, OPTIONS"},
        )

    trace_id = str(uuid.uuid4())
    started = time.perf_counter()
    try:
        settings = load_settings()
        url = upstream_url or settings.upstream_url
        if settings.debug_request_log:
            try:
                debug_payload = {
                    "method": method,
                    "url": req.url,
                    "headers": _sanitize_headers(dict(req.headers) if req.headers else {}),
                    "trace_id": trace_id,
                }
                logger.info("http_request_debug: " + json.dumps(debug_payload))
            except Exception:
                # Never fail the request due to debug logging
                pass

        action, payload = read_envelope(req.get_body())
        form_body = encode_envelope(action, payload)

        def _do_sync() -> Tuple[int, str]:
            # Apps Script answers POSTs with a redirect to the content host.
            with httpx.Client(transport=transport, timeout=UPSTREAM_TIMEOUT_S, follow_redirects=True) as client:
                resp = client.post(url, content=form_body, headers={"Content-Type": FORM_CONTENT_TYPE})
                return resp.status_code, resp.text

        status, text = await asyncio.to_thread(_do_sync)
        parsed = parse_or_wrap(text)

        telemetry = {
            "event": "sheets_proxy_call",
            "action": action,
            "upstream_status": status,
            "wrapped": parsed.wrapped,
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
            "trace_id": trace_id,
        }
        logger.info("sheets_proxy: " + json.dumps(telemetry))

        out_status = 200 if 200 <= status < 300 else status
        hdrs = dict(CORS_HEADERS)
        hdrs["X-Trace-Id"] = trace_id
        return _json_response(out_status, parsed.data, hdrs)
    except Exception as e:
        logger.exception("Proxy error", extra={"trace_id": trace_id})
        return _json_response(
            500,
            {"status": "error", "data": str(e) or "Internal server error"},
            {"Access-Control-Allow-Origin": "*", "X-Trace-Id": trace_id},
        )
