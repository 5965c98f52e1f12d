import os
from pathlib import Path
from unittest.mock import patch
from zoneinfo import ZoneInfo

from my_assistant.bot import BotConfig


def test_defaults():
    with patch("my_assistant.bot.config.load_dotenv"), patch.dict(os.environ, {}, clear=True):
        config = BotConfig.from_env()

    assert config.token == ""
    assert config.smtp_host == "smtp.gmail.com"
    assert config.smtp_port == 587
    assert config.data_dir == Path("data")
    assert config.use_firestore is False
    assert config.tz == ZoneInfo("Asia/Taipei")


def test_from_env():
    env = {
        "TELEGRAM_BOT_TOKEN": "123:ABC",
        "SMTP_HOST": "mail.example.com",
        "SMTP_PORT": "2525",
        "SMTP_USER": "bot@example.com",
        "SMTP_PASS": "secret",
        "DATA_DIR": "/var/lib/assistant",
        "ATTACHMENTS_DIR": "/var/lib/assistant/files",
        "BOT_TIMEZONE": "Europe/Berlin",
        "USE_FIRESTORE": "Yes",
        "FIRESTORE_COLLECTION": "prod_data",
    }
    with patch("my_assistant.bot.config.load_dotenv"), patch.dict(os.environ, env, clear=True):
        config = BotConfig.from_env()

    assert config.token == "123:ABC"
    assert config.smtp_port == 2525
    assert config.smtp_password == "secret"
    assert config.attachments_dir == Path("/var/lib/assistant/files")
    assert config.use_firestore is True
    assert config.firestore_collection == "prod_data"
    assert config.tz == ZoneInfo("Europe/Berlin")
