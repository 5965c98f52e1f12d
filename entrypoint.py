"""Web entrypoint for the assistant bot.

Serves all routes on ``$PORT`` (default 8080):
- POST /webhook   - batch of platform updates, acknowledged immediately
- GET  /health    - Health check
- GET  /          - Liveness banner
"""

import asyncio
import logging
import os
import threading
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from telegram import Bot, Update

from my_assistant.bot import AssistantBot, BotConfig, InboundEvent

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "logs/bot.log")

root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler) for h in root_logger.handlers):
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

log_path = Path(LOG_FILE).expanduser().resolve()
log_path.parent.mkdir(parents=True, exist_ok=True)
if not any(isinstance(h, RotatingFileHandler) and getattr(h, 'baseFilename', None) == str(log_path) for h in root_logger.handlers):
    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Async bridge: dedicated loop in background thread to run bot coroutines
# ---------------------------------------------------------------------------

_loop = asyncio.new_event_loop()
_loop_thread = threading.Thread(target=_loop.run_forever, daemon=True)
_loop_thread.start()


def run_async(coro, timeout: float = 60.0):
    """Run *coro* on the background loop and wait for result."""
    future = asyncio.run_coroutine_threadsafe(coro, _loop)
    return future.result(timeout=timeout)


def _log_failure(future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Event processing failed", exc_info=exc)


def submit_async(coro):
    """Schedule *coro* on the background loop without waiting for it."""
    future = asyncio.run_coroutine_threadsafe(coro, _loop)
    future.add_done_callback(_log_failure)
    return future


# ---------------------------------------------------------------------------
# Flask app created early so the platform sees port binding immediately
# ---------------------------------------------------------------------------

app = Flask(__name__)

# Bot state; initialisation is lazy and resilient
_bot_ready = threading.Event()
_bot_starting = threading.Event()
_bot_error: Optional[str] = None
assistant: Optional[AssistantBot] = None
telegram_bot: Optional[Bot] = None
_init_thread: Optional[threading.Thread] = None


def _init_bot():
    """Initialise the bot in the background."""
    global assistant, telegram_bot, _bot_error
    try:
        config = BotConfig.from_env()
        if not config.token:
            _bot_error = "TELEGRAM_BOT_TOKEN not set"
            logger.error(_bot_error)
            return

        bot = Bot(config.token)
        # initialize() contacts the Telegram API to validate the token
        run_async(bot.initialize())

        telegram_bot = bot
        assistant = AssistantBot.from_config(config, bot)
        _bot_ready.set()
        logger.info("Assistant bot initialised successfully (data: %s, attachments: %s)",
                    config.data_dir, config.attachments_dir)
    except Exception:  # noqa: BLE001
        _bot_error = traceback.format_exc()
        logger.exception("Assistant bot initialisation failed")


def _start_bot_once():
    """Kick off bot startup in a daemon thread (idempotent)."""
    global _init_thread
    if _bot_starting.is_set():
        return
    _bot_starting.set()
    _init_thread = threading.Thread(target=_init_bot, daemon=True)
    _init_thread.start()


def _wait_for_bot(timeout: float = 30.0) -> Tuple[bool, str]:
    """Wait for bot readiness, returning (ok, message)."""
    if _bot_error:
        return False, "Bot failed to start"
    if _bot_ready.wait(timeout=timeout):
        return True, ""
    return False, "Bot not ready"


def _bot_status() -> str:
    if _bot_error:
        return "error"
    return "ready" if _bot_ready.is_set() else "starting"


def _updates_from_payload(payload) -> List[dict]:
    """The webhook body may be one update, a list of updates or ``{"events": [...]}``."""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        events = payload.get("events")
        if isinstance(events, list):
            return [item for item in events if isinstance(item, dict)]
        return [payload]
    return []


@app.before_request
def _ensure_bot_started():
    if request.path in ("/health", "/"):
        return
    _start_bot_once()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route("/webhook", methods=["POST"])
def webhook():
    """Acknowledge a batch of updates and process them in the background."""
    payload = request.get_json(force=True, silent=True)
    if payload is None:
        return jsonify({"error": "invalid JSON"}), 400
    ok, msg = _wait_for_bot()
    if not ok:
        return jsonify({"error": msg}), 503

    for data in _updates_from_payload(payload):
        try:
            update = Update.de_json(data, telegram_bot)
            event = InboundEvent.from_update(update)
        except Exception:  # noqa: BLE001
            logger.exception("Could not parse update: %s", data)
            continue
        if event is None:
            logger.debug("Ignoring update without a handled payload: %s", data)
            continue
        submit_async(assistant.handle_event(event))
    return "ok", 200


@app.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "ok",
        "bot": _bot_status(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200


@app.route("/", methods=["GET"])
def index():
    return "Assistant bot is running! ✅", 200


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8080))
    logger.info("Starting entrypoint on port %s", port)
    _start_bot_once()
    app.run(host="0.0.0.0", port=port)
