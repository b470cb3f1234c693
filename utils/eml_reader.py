from __future__ import annotations

from email import policy
from email.message import EmailMessage as MimeMessage
from email.parser import BytesParser
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Dict

from models.email_message import EmailMessage


def load_eml(path: Path) -> EmailMessage:
    """Parse a saved RFC 822 message without following anything it links to."""

    with path.open("rb") as handle:
        mime: MimeMessage = BytesParser(policy=policy.default).parse(handle)

    headers: Dict[str, str] = {}
    for name, value in mime.items():
        key = name.lower()
        headers[key] = f"{headers[key]}\n{value}" if key in headers else str(value)

    received_at = None
    if date_header := headers.get("date"):
        try:
            received_at = parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            received_at = None

    return EmailMessage(
        id=headers.get("message-id", path.name),
        thread_id=None,
        subject=headers.get("subject", "(no subject)"),
        body=_plain_body(mime),
        sender=headers.get("from", ""),
        reply_to=headers.get("reply-to", ""),
        headers=headers,
        received_at=received_at,
    )


def _plain_body(mime: MimeMessage) -> str:
    part = mime.get_body(preferencelist=("plain",))
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")
