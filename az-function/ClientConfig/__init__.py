import json
import logging

import azure.functions as func

from shared.client_config import CookieStorage, load_client_config

logger = logging.getLogger("client_config")


async def main(req: func.HttpRequest) -> func.HttpResponse:
    """Serve the browser configuration, issuing a userId cookie on first visit."""
    if (req.method or "").upper() != "GET":
        return func.HttpResponse(status_code=405, mimetype="application/json", body='{"error":"Method not allowed"}', headers={"Allow": "GET"})

    storage = CookieStorage(req.headers.get("Cookie"))
    try:
        config = load_client_config(storage)
    except ValueError as e:
        logger.exception("Client config error")
        return func.HttpResponse(status_code=500, mimetype="application/json", body=json.dumps({"status": "error", "data": str(e)}))

    hdrs = {"Content-Type": "application/json", "Cache-Control": "no-store"}
    cookies = storage.set_cookie_headers
    if cookies:
        hdrs["Set-Cookie"] = cookies[0]
    return func.HttpResponse(status_code=200, mimetype="application/json", body=json.dumps(config.to_dict()), headers=hdrs)
