"""
LINE Bot: posts the title of every link shared in a chat.
Receives LINE webhooks, resolves URLs with bounded downloads, replies with titles.
"""
import asyncio
import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from linebot import LineBotApi, WebhookHandler
from linebot.exceptions import InvalidSignatureError

import config
import handlers
import history

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
log = logging.getLogger(__name__)

line_bot_api = LineBotApi(config.LINE_CHANNEL_ACCESS_TOKEN)
handler = WebhookHandler(config.LINE_CHANNEL_SECRET)
handlers.register(handler, line_bot_api)

app = FastAPI(title="LINE Link Title Bot")


@app.get("/")
def root():
    return {"service": "LINE Link Title Bot", "version": config.VERSION, "health": "ok"}


@app.get("/health")
def health():
    """200 when LINE credentials are configured, else 503. Lists the latest failed resolutions."""
    missing = config.get_missing_config()
    body = {
        "status": "ok" if not missing else "degraded",
        "missing_config": missing,
        "history": "on" if history.enabled() else "off",
        "recent_errors": [
            {"url": e.get("url"), "time_created": e.get("time_created")} for e in history.recent_errors(5)
        ],
    }
    if missing:
        return JSONResponse(status_code=503, content=body)
    return body


@app.post("/callback")
async def callback(request: Request):
    body = await request.body()
    signature = request.headers.get("X-Line-Signature", "")

    if not signature or not config.LINE_CHANNEL_SECRET or not config.LINE_CHANNEL_ACCESS_TOKEN:
        raise HTTPException(status_code=500, detail="LINE credentials not configured")

    # Handlers block on network I/O and run their own event loop per resolution
    try:
        await asyncio.to_thread(handler.handle, body.decode("utf-8"), signature)
    except InvalidSignatureError:
        raise HTTPException(status_code=400, detail="Invalid signature")

    return "OK"
