"""Bot configuration dataclass."""

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes")


@dataclass
class BotConfig:
    token: str = ""
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    data_dir: Path = Path("data")
    attachments_dir: Path = Path("attachments")
    timezone: str = "Asia/Taipei"
    port: int = 8080
    use_firestore: bool = False
    firestore_collection: str = "assistant_data"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> "BotConfig":
        load_dotenv()
        return cls(
            token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.getenv("SMTP_PORT", 587)),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASS", ""),
            data_dir=Path(os.getenv("DATA_DIR", "data")),
            attachments_dir=Path(os.getenv("ATTACHMENTS_DIR", "attachments")),
            timezone=os.getenv("BOT_TIMEZONE", "Asia/Taipei"),
            port=int(os.getenv("PORT", 8080)),
            use_firestore=_env_flag("USE_FIRESTORE"),
            firestore_collection=os.getenv("FIRESTORE_COLLECTION", "assistant_data"),
        )


__all__ = ["BotConfig"]
