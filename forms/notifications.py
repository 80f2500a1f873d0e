"""
Fire-and-forget delivery of submission notifications
"""
import asyncio
from email.message import EmailMessage
from typing import Set

import aiosmtplib

from config.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


class SmtpMailer:
    """Authenticated SMTP relay transport"""

    def __init__(self, host: str, port: int, username: str, password: str):
        self.host = host
        self.port = port
        self.username = username
        self.password = password

    async def send(self, message: EmailMessage) -> None:
        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.port == 465,  # implicit TLS; STARTTLS negotiated otherwise
        )


class NotificationDispatcher:
    """
    Sends notifications on detached tasks.

    ``dispatch`` returns immediately. The send runs on its own task, outside
    the caller's cancellation scope; its outcome is logged and nothing else.
    There is exactly one attempt per message: no retry, no persistence.
    """

    def __init__(self, mailer):
        self._mailer = mailer
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, message: EmailMessage) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(message))
        # the loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, message: EmailMessage) -> None:
        try:
            await self._mailer.send(message)
        except Exception as e:
            logger.error("Failed to send notification to %s: %s", message["To"], e, exc_info=True)
            return
        logger.info("Notification sent to %s", message["To"])

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight sends to finish (used at shutdown)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
