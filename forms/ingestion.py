"""
Public submission write-path: secret -> durable row -> detached notification
"""
import json
from email.message import EmailMessage
from typing import Any, Dict, Protocol

from config.logging_config import LoggingConfig
from forms.store import FormStore, IPAddress
from models.models import Form, Submission

logger = LoggingConfig.get_logger(__name__)


def _render_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def compose_notification(form: Form, owner_email: str, ip_address: IPAddress,
                         data: Dict[str, Any], mail_from: str) -> EmailMessage:
    lines = [
        "New form submission:",
        "",
        f"Form: {form.name}",
        f"Form ID: {form.id}",
        f"IP Address: {ip_address}",
        "",
    ]
    lines.extend(f"{key}: {_render_value(value)}" for key, value in data.items())

    message = EmailMessage()
    message["From"] = mail_from
    message["To"] = owner_email
    message["Subject"] = f"New submission for form: {form.name}"
    message.set_content("\n".join(lines) + "\n")
    return message


class Dispatcher(Protocol):
    def dispatch(self, message: EmailMessage) -> None: ...


class SubmissionPipeline:
    """Ingests a submission addressed by form secret.

    The row is committed before ``ingest`` returns. The owner notification is
    handed to the dispatcher afterwards and can neither delay nor fail the
    result.
    """

    def __init__(self, store: FormStore, dispatcher: Dispatcher, mail_from: str):
        self.store = store
        self.dispatcher = dispatcher
        self.mail_from = mail_from

    async def ingest(self, secret: str, data: Dict[str, Any], ip_address: IPAddress) -> Submission:
        # NotFoundError propagates: unknown and deleted secrets look the same
        form, owner_email = await self.store.find_by_secret(secret)

        submission = await self.store.add_submission(form.id, data, ip_address)
        logger.info("Stored submission %s for form %s", submission.id, form.id)

        try:
            message = compose_notification(form, owner_email, ip_address, data, self.mail_from)
            self.dispatcher.dispatch(message)
        except Exception as e:
            logger.error("Could not schedule notification for submission %s: %s",
                         submission.id, e, exc_info=True)

        return submission
