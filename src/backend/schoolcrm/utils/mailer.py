import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Any, Dict, List

from schoolcrm.config import settings
from schoolcrm.utils.logger import get_logger
from schoolcrm.utils.phone import format_phone_display, whatsapp_link

logger = get_logger(__name__)


def _format_value(value: Any) -> str:
    if value is None or value == "":
        return "N/A"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _build_lead_body(lead_data: Dict[str, Any]) -> str:
    lines = ["Um novo lead chegou pelo webhook:"]
    display = dict(lead_data)
    display["phone"] = format_phone_display(lead_data.get("phone"))
    for label, key in [
        ("Lead ID", "lead_id"),
        ("Nome", "full_name"),
        ("Telefone", "phone"),
        ("Email", "email"),
        ("Status", "status"),
        ("Curso", "course_name"),
        ("Origem", "external_source"),
        ("Observações", "notes"),
    ]:
        lines.append(f"+ {label}: {_format_value(display.get(key))}")
    if lead_data.get("phone"):
        lines.append(f"+ WhatsApp: {whatsapp_link(lead_data['phone'])}")
    return "\n".join(lines)


def _notification_recipients() -> List[str]:
    return [
        address.strip()
        for address in settings.lead_notification_recipients
        if address and address.strip()
    ]


def _build_message(lead_data: Dict[str, Any], recipients: List[str]) -> EmailMessage:
    name = lead_data.get("full_name")
    subject = settings.lead_notification_subject
    message = EmailMessage()
    message["Subject"] = f"{subject}: {name}" if name else subject
    message["From"] = settings.lead_notification_from
    message["To"] = ", ".join(recipients)
    message.set_content(_build_lead_body(lead_data))
    return message


def _deliver(message: EmailMessage) -> None:
    if settings.smtp_use_ssl:
        smtp_factory = smtplib.SMTP_SSL
    else:
        smtp_factory = smtplib.SMTP
    with smtp_factory(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
        if settings.smtp_use_tls and not settings.smtp_use_ssl:
            smtp.starttls()
        if settings.smtp_username and settings.smtp_password:
            smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(message)


def send_lead_notification(lead_data: Dict[str, Any]) -> bool:
    """
    E-mail the secretariat about a lead that has just been created.

    Runs as a background task after the webhook response, so delivery
    problems are logged and never reach the caller. Returns True when a
    message was handed to the SMTP server.
    """
    lead_id = lead_data.get("lead_id")
    if not settings.lead_notification_enabled:
        logger.debug("Notifications disabled; lead %s not announced.", lead_id)
        return False

    recipients = _notification_recipients()
    if not recipients or not settings.smtp_host:
        logger.warning(
            "Lead %s not announced: recipients=%d smtp_host=%s",
            lead_id,
            len(recipients),
            settings.smtp_host or "unset",
        )
        return False

    try:
        _deliver(_build_message(lead_data, recipients))
    except (smtplib.SMTPException, OSError):
        logger.exception("Could not announce lead %s over SMTP", lead_id)
        return False
    logger.info("Lead %s announced to %s", lead_id, ", ".join(recipients))
    return True
