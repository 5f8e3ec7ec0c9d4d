"""
Outbound email through fastapi-mail.

Recipients are normalised before sending. Generated guest donor addresses
are dropped because nobody reads them.
"""
import logging
from typing import Iterable, List, Union

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from charity_hub import settings

logger = logging.getLogger(__name__)


def mail_configured() -> bool:
    return bool(settings.MAIL_SERVER)


def is_placeholder_address(address: str) -> bool:
    local, _, domain = address.strip().lower().rpartition("@")
    return local.startswith("unknown_") and domain == settings.GUEST_EMAIL_DOMAIN


def deliverable_recipients(recipients: Union[Iterable[str], str]) -> List[str]:
    """Lower-cased recipients in first-seen order, without blanks, repeats or placeholders."""
    if isinstance(recipients, str):
        recipients = [recipients]
    deliverable = []
    for address in recipients:
        address = (address or "").strip().lower()
        if not address or address in deliverable or is_placeholder_address(address):
            continue
        deliverable.append(address)
    return deliverable


def build_message(recipients: List[str], subject: str, body: str, html: bool = False) -> MessageSchema:
    return MessageSchema(
        subject=subject,
        recipients=recipients,
        body=body,
        subtype=MessageType.html if html else MessageType.plain,
    )


def _connection_config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
    )


async def send_mail(
    recipients: Union[Iterable[str], str],
    subject: str,
    body: str,
    *,
    html: bool = False,
) -> None:
    deliverable = deliverable_recipients(recipients)
    if not deliverable:
        logger.info("Email %r has no deliverable recipients, skipped", subject)
        return

    message = build_message(deliverable, subject, body, html=html)
    await FastMail(_connection_config()).send_message(message)
    logger.info("Email %r sent to %d recipient(s)", subject, len(deliverable))
