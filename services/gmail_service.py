from __future__ import annotations

import base64
import logging
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Sequence

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from models.email_message import EmailMessage, MailThread
from services.auth_service import AuthService
from services.mailbox import IMPORTANT, STARRED, MailboxDriver
from utils.config import AccountConfig

LOGGER = logging.getLogger(__name__)


class GmailService(MailboxDriver):
    """Mailbox driver backed by the Gmail API threads endpoints."""

    def __init__(self, account: AccountConfig, auth_service: AuthService, client: Any = None):
        self._account = account
        if client is None:
            creds = auth_service.authenticate()
            client = build("gmail", "v1", credentials=creds, cache_discovery=False)
        self._client = client
        self._label_ids: Dict[str, str] = {}

    @property
    def user_id(self) -> str:
        return self._account.user_id

    def list_thread_ids(self, view: str, exclude_label: str, max_results: int) -> List[str]:
        query = f"in:{view} -label:{_quote_label(exclude_label)}"
        try:
            response = (
                self._client.users()
                .threads()
                .list(userId=self.user_id, q=query, maxResults=max_results, includeSpamTrash=True)
                .execute()
            )
        except HttpError as exc:
            LOGGER.error("Failed to list threads for %r: %s", query, exc)
            raise

        threads = response.get("threads", [])
        LOGGER.info("Found %s thread(s) matching %r", len(threads), query)
        return [item["id"] for item in threads[:max_results]]

    def get_thread(self, thread_id: str) -> MailThread:
        try:
            response = (
                self._client.users()
                .threads()
                .get(userId=self.user_id, id=thread_id, format="full")
                .execute()
            )
        except HttpError as exc:
            LOGGER.error("Failed to load thread %s: %s", thread_id, exc)
            raise
        messages = tuple(_message_from_resource(item) for item in response.get("messages", []))
        labels = sorted({label for message in messages for label in message.labels})
        return MailThread(id=response.get("id", thread_id), messages=messages, labels=tuple(labels))

    def ensure_label(self, label_name: str) -> str:
        if label_name in self._label_ids:
            return self._label_ids[label_name]
        for label in self._list_labels():
            if label["name"].lower() == label_name.lower():
                LOGGER.debug("Label %s already exists as %s", label_name, label["id"])
                self._label_ids[label_name] = label["id"]
                return label["id"]
        body = {"name": label_name, "labelListVisibility": "labelShow", "messageListVisibility": "show"}
        response = self._client.users().labels().create(userId=self.user_id, body=body).execute()
        LOGGER.info("Created label %s with id %s", label_name, response["id"])
        self._label_ids[label_name] = response["id"]
        return response["id"]

    def apply_label(self, thread_id: str, label_name: str) -> None:
        self._modify(thread_id, [self.ensure_label(label_name)])
        LOGGER.debug("Applied label %s to thread %s", label_name, thread_id)

    def star_thread(self, thread_id: str) -> None:
        self._modify(thread_id, [STARRED])

    def mark_important(self, thread_id: str) -> None:
        self._modify(thread_id, [IMPORTANT])

    def trash_thread(self, thread_id: str) -> None:
        self._client.users().threads().trash(userId=self.user_id, id=thread_id).execute()
        LOGGER.info("Moved thread %s to trash", thread_id)

    def _modify(self, thread_id: str, label_ids: Sequence[str]) -> Dict:
        body = {"addLabelIds": list(label_ids)}
        return (
            self._client.users()
            .threads()
            .modify(userId=self.user_id, id=thread_id, body=body)
            .execute()
        )

    def _list_labels(self) -> List[Dict]:
        response = self._client.users().labels().list(userId=self.user_id).execute()
        return response.get("labels", [])


def _quote_label(label_name: str) -> str:
    # Gmail search expects spaces and slashes in label names replaced by dashes.
    return label_name.replace(" ", "-").replace("/", "-")


def _message_from_resource(response: Dict) -> EmailMessage:
    payload = response.get("payload", {})
    headers = _headers_to_dict(payload.get("headers", []))
    received_at = None
    if date_header := headers.get("date"):
        try:
            received_at = parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            LOGGER.debug("Unable to parse date header: %s", date_header)
    return EmailMessage(
        id=response["id"],
        thread_id=response.get("threadId"),
        subject=headers.get("subject", "(no subject)"),
        body=_extract_body(payload),
        snippet=response.get("snippet", ""),
        sender=headers.get("from", ""),
        reply_to=headers.get("reply-to", ""),
        headers=headers,
        labels=tuple(response.get("labelIds", [])),
        received_at=received_at,
    )


def _headers_to_dict(headers: Sequence[Dict[str, str]]) -> Dict[str, str]:
    mapped: Dict[str, str] = {}
    for header in headers:
        name = header.get("name", "").lower()
        value = header.get("value", "")
        # Relays may add several Authentication-Results headers; keep them all.
        mapped[name] = f"{mapped[name]}\n{value}" if name in mapped else value
    return mapped


def _extract_body(payload: Dict) -> str:
    if payload.get("mimeType", "text/plain") == "text/plain" and payload.get("body", {}).get("data"):
        return _decode_base64(payload["body"]["data"])
    for part in payload.get("parts", []) or []:
        if part.get("mimeType", "") == "text/plain":
            data = part.get("body", {}).get("data")
            if data:
                return _decode_base64(data)
        if part.get("parts"):
            nested = _extract_body(part)
            if nested:
                return nested
    return ""


def _decode_base64(data: Optional[str]) -> str:
    try:
        padded = (data or "") + "=" * (-len(data or "") % 4)
        decoded = base64.urlsafe_b64decode(padded).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return ""
    return decoded
