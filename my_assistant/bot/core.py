"""Event handling for the assistant bot."""

import logging
from datetime import datetime

from my_assistant.constants import (
    ATTACHMENT_TYPES,
    BOT_USER_ID,
    BOT_USER_NAME,
    CONVERSATIONS,
    UNKNOWN_USER,
    file_type_name,
    format_datetime,
)
from my_assistant.mailer import SmtpMailer
from my_assistant.reports import EmailExporter, ReportEngine
from my_assistant.storage import AttachmentStore, attachment_filename, create_document_store

from .config import BotConfig
from .flows import FlowController
from .gateway import InboundEvent, TelegramGateway
from .state import ConversationStateStore
from .visualization import VisualizationService

logger = logging.getLogger(__name__)


class AssistantBot:
    """Logs every inbound message, runs text through the flow controller and replies."""

    def __init__(self, gateway, store, attachments: AttachmentStore, flows: FlowController, tz=None):
        self.gateway = gateway
        self.store = store
        self.attachments = attachments
        self.flows = flows
        self.tz = tz

    @classmethod
    def from_config(cls, config: BotConfig, telegram_bot) -> "AssistantBot":
        store = create_document_store(config)
        store.initialize()
        attachments = AttachmentStore(config.attachments_dir)
        attachments.initialize()
        reports = ReportEngine(store, tz=config.tz)
        mailer = SmtpMailer(config.smtp_host, config.smtp_port, config.smtp_user, config.smtp_password)
        exporter = EmailExporter(store, attachments, mailer, reports, viz=VisualizationService())
        flows = FlowController(store, reports, exporter, states=ConversationStateStore())
        return cls(TelegramGateway(telegram_bot), store, attachments, flows, tz=config.tz)

    async def handle_event(self, event: InboundEvent) -> None:
        if event.kind == "postback":
            logger.info("Postback data from %s: %s", event.user_id, event.postback_data)
            return
        if event.kind != "message":
            logger.debug("Ignoring %s event", event.kind)
            return

        user_name = await self._display_name(event.user_id)

        if event.message_type == "text":
            await self._handle_text(event, user_name)
        elif event.message_type in ATTACHMENT_TYPES:
            await self._handle_attachment(event, user_name)
        else:
            self._log(event, user_name, event.message_type, content=f"[{event.message_type}]")

    async def _display_name(self, user_id: str) -> str:
        try:
            return await self.gateway.get_display_name(user_id)
        except Exception as exc:
            logger.error("Could not resolve display name for %s: %s", user_id, exc)
            return UNKNOWN_USER

    async def _handle_text(self, event: InboundEvent, user_name: str) -> None:
        text = event.text.strip()
        if not text:
            return
        self._log(event, user_name, "text", content=text)
        reply = await self.flows.handle_text(event.user_id, user_name, text)
        await self._reply(event, reply)

    async def _handle_attachment(self, event: InboundEvent, user_name: str) -> None:
        try:
            content = await self.gateway.fetch_content(event)
            filename = attachment_filename(event.timestamp, user_name, event.message_id, event.message_type)
            self.attachments.save(filename, content)
        except Exception:
            logger.exception("Failed to download attachment %s", event.message_id)
            filename = f"attachment_{event.message_id}"

        self._log(event, user_name, event.message_type, filename=filename)
        await self._reply(event, f"✅ 已收到您的{file_type_name(event.message_type)}: {filename}")

    async def _reply(self, event: InboundEvent, text: str) -> None:
        try:
            await self.gateway.reply(event, text)
        except Exception:
            logger.exception("Failed to reply to %s", event.user_id)
            return
        now = datetime.now(self.tz)
        millis = int(now.timestamp() * 1000)
        self.store.append(CONVERSATIONS, {
            "id": f"bot-{millis}",
            "time": format_datetime(now),
            "timestamp": millis,
            "user": BOT_USER_NAME,
            "userId": BOT_USER_ID,
            "type": "bot",
            "content": text,
        })

    def _log(self, event: InboundEvent, user_name: str, message_type: str, **fields) -> None:
        local = event.timestamp.astimezone(self.tz)
        entry = {
            "id": event.message_id,
            "time": format_datetime(local),
            "timestamp": int(event.timestamp.timestamp() * 1000),
            "user": user_name,
            "userId": event.user_id,
            "type": message_type,
        }
        entry.update(fields)
        self.store.append(CONVERSATIONS, entry)
