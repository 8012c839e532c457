"""Devotional bot: wires the session, content and scheduler together."""

import asyncio
import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from devocional.config.models import BotConfig
from devocional.credentials import CredentialStore, create_credential_store
from devocional.db.engine import Database
from devocional.readings import ReadingPlan
from devocional.recipients import RecipientStore
from devocional.scheduling import DeliveryScheduler, ScheduleDescriptor
from devocional.scheduling.scheduler import NowFn, SleepFn, utc_now
from devocional.session import SessionManager, Transport, load_transport
from devocional.shortener import UrlShortener

logger = logging.getLogger(__name__)

TEST_MESSAGE = "🤖 Teste do Bot Devocional - Funcionando!"


class DevotionalBot:
    """Top-level orchestration for one messaging session.

    Collaborators default to what the configuration describes; tests pass
    their own.
    """

    def __init__(
        self,
        config: BotConfig,
        *,
        store: CredentialStore | None = None,
        transport: Transport | None = None,
        readings: ReadingPlan | None = None,
        recipients: RecipientStore | None = None,
        shortener: UrlShortener | None = None,
        sleep: SleepFn = asyncio.sleep,
        now: NowFn = utc_now,
    ):
        self._config = config
        self._now = now
        # Destinations that already received the reading for a given day
        self._delivered: dict[date, set[str]] = {}
        self._store = store or create_credential_store(config.credentials)
        self._shortener = shortener or UrlShortener(
            enabled=config.shortener.enabled, timeout=config.shortener.timeout
        )
        self._readings = readings or ReadingPlan(
            config.readings.path,
            bible_version=config.readings.bible_version,
            footer_url=config.readings.footer_url,
            shortener=self._shortener,
        )
        self._recipients = recipients or RecipientStore(
            Database(database_path=config.recipients.database_path)
        )
        self._session = SessionManager(
            transport or load_transport(config.session.transport),
            self._store,
            config.session.name,
            reconnect_delay=config.session.reconnect_delay,
            settle_delay=config.session.settle_delay,
            sleep=sleep,
        )
        self._scheduler = DeliveryScheduler(
            self.send_todays_devotional,
            ScheduleDescriptor(
                send_time=config.delivery.send_time,
                timezone=config.delivery.timezone,
                enabled=config.delivery.enabled,
            ),
            max_retries=config.delivery.max_retries,
            retry_delay=config.delivery.retry_delay,
            sleep=sleep,
            now=now,
        )

    @property
    def config(self) -> BotConfig:
        return self._config

    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def scheduler(self) -> DeliveryScheduler:
        return self._scheduler

    @property
    def readings(self) -> ReadingPlan:
        return self._readings

    @property
    def recipients(self) -> RecipientStore:
        return self._recipients

    @property
    def store(self) -> CredentialStore:
        return self._store

    def today(self) -> date:
        return self._now().astimezone(ZoneInfo(self._config.delivery.timezone)).date()

    async def start(self) -> None:
        """Start the session, then arm the scheduler.

        Raises:
            InvalidSchedule: If the delivery time or timezone is invalid.
        """
        logger.info(
            "bot_starting",
            extra={
                "session.id": self._session.session_id,
                "credentials.backend": self._store.name,
                "readings.count": self._readings.count,
            },
        )
        await self._recipients.initialize()
        await self._session.start()
        await self._scheduler.start()

    async def stop(self) -> None:
        """Stop the scheduler, then the session, then release storage."""
        await self._scheduler.stop()
        await self._session.stop()
        for name, close in (
            ("credentials", self._store.close),
            ("recipients", self._recipients.close),
            ("shortener", self._shortener.aclose),
        ):
            try:
                await close()
            except Exception as e:
                logger.warning(
                    "bot_shutdown_error",
                    extra={"bot.resource": name, "error.message": str(e)},
                )
        logger.info("bot_stopped")

    async def destinations(self) -> list[str]:
        """Registered recipients, or the configured group chat if there are none."""
        chat_ids = await self._recipients.chat_ids()
        if chat_ids:
            return chat_ids
        if self._config.delivery.group_chat_id:
            return [self._config.delivery.group_chat_id]
        return []

    async def send_todays_devotional(self) -> bool:
        today = self.today()
        content = await self._readings.get_content_for_date(today)
        if content is None:
            logger.warning("devotional_missing", extra={"readings.date": today.isoformat()})
            return False

        destinations = await self.destinations()
        if not destinations:
            logger.error("devotional_no_destinations")
            return False

        delivered = self._delivered.get(today, set())
        self._delivered = {today: delivered}
        pending = [d for d in destinations if d not in delivered]
        if not pending:
            logger.info(
                "devotional_already_delivered",
                extra={"readings.date": today.isoformat()},
            )
            return True

        summary = await self._session.send_to_many(pending, content)
        delivered.update(summary.delivered)
        logger.info(
            "devotional_sent",
            extra={
                "readings.date": today.isoformat(),
                "delivery.skipped_count": len(destinations) - len(pending),
                "delivery.success_count": summary.success_count,
                "delivery.failure_count": summary.failure_count,
            },
        )
        return summary.all_succeeded

    async def send_test_message(self) -> bool:
        destinations = await self.destinations()
        if not destinations:
            logger.error("devotional_no_destinations")
            return False
        stamp = datetime.now(ZoneInfo(self._config.delivery.timezone)).strftime(
            "%d/%m/%Y %H:%M"
        )
        summary = await self._session.send_to_many(
            destinations, f"{TEST_MESSAGE}\n{stamp}"
        )
        return summary.all_succeeded
