from __future__ import annotations

import base64
from pathlib import Path
from unittest.mock import MagicMock

from models.triage_rules import TriageLabels, TriageRules
from services.gmail_service import GmailService, _extract_body, _headers_to_dict
from services.triage_runner import TriageRunner
from utils.config import AccountConfig


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _service(client: MagicMock) -> GmailService:
    account = AccountConfig(name="default", credentials_file=Path("c.json"), token_file=Path("t.json"), user_id="me")
    return GmailService(account, auth_service=MagicMock(), client=client)


def test_headers_to_dict_joins_repeated_headers() -> None:
    headers = _headers_to_dict(
        [
            {"name": "From", "value": "a@b.co"},
            {"name": "Authentication-Results", "value": "relay; spf=fail"},
            {"name": "Authentication-Results", "value": "mx.google.com; dkim=pass"},
        ]
    )
    assert headers["from"] == "a@b.co"
    assert headers["authentication-results"] == "relay; spf=fail\nmx.google.com; dkim=pass"


def test_extract_body_prefers_plain_text_part() -> None:
    payload = {
        "mimeType": "multipart/alternative",
        "parts": [
            {"mimeType": "text/html", "body": {"data": _b64("<p>html</p>")}},
            {"mimeType": "text/plain", "body": {"data": _b64("plain body")}},
        ],
    }
    assert _extract_body(payload) == "plain body"
    assert _extract_body({"mimeType": "text/html", "body": {"data": _b64("<p>x</p>")}}) == ""


def _thread_resource(thread_id: str, subject: str = "Your statement") -> dict:
    return {
        "id": thread_id,
        "messages": [
            {
                "id": f"m-{thread_id}",
                "threadId": thread_id,
                "labelIds": ["INBOX", "UNREAD"],
                "snippet": "statement",
                "payload": {
                    "mimeType": "text/plain",
                    "headers": [
                        {"name": "From", "value": "Chase <billing@chase.com>"},
                        {"name": "Reply-To", "value": "noreply@chase.com"},
                        {"name": "Subject", "value": subject},
                        {"name": "Authentication-Results", "value": "spf=pass"},
                    ],
                    "body": {"data": _b64("See https://chase.com/statements")},
                },
            }
        ],
    }


def test_list_thread_ids_builds_exclusion_query() -> None:
    client = MagicMock()
    threads = client.users.return_value.threads.return_value
    threads.list.return_value.execute.return_value = {"threads": [{"id": "t-1"}, {"id": "t-2"}]}

    result = _service(client).list_thread_ids("inbox", "Triage/Processed", 5)

    threads.list.assert_called_once_with(
        userId="me", q="in:inbox -label:Triage-Processed", maxResults=5, includeSpamTrash=True
    )
    threads.get.assert_not_called()
    assert result == ["t-1", "t-2"]


def test_get_thread_hydrates_messages() -> None:
    client = MagicMock()
    threads = client.users.return_value.threads.return_value
    threads.get.return_value.execute.return_value = _thread_resource("t-1")

    thread = _service(client).get_thread("t-1")

    threads.get.assert_called_once_with(userId="me", id="t-1", format="full")
    message = thread.messages[0]
    assert thread.labels == ("INBOX", "UNREAD")
    assert message.sender == "Chase <billing@chase.com>"
    assert message.reply_to == "noreply@chase.com"
    assert message.header("Authentication-Results") == "spf=pass"
    assert message.body == "See https://chase.com/statements"


def test_ensure_label_reuses_existing_and_caches() -> None:
    client = MagicMock()
    labels = client.users.return_value.labels.return_value
    labels.list.return_value.execute.return_value = {"labels": [{"name": "triage/important", "id": "Label_1"}]}
    service = _service(client)

    assert service.ensure_label("Triage/Important") == "Label_1"
    assert service.ensure_label("Triage/Important") == "Label_1"
    labels.list.assert_called_once()
    labels.create.assert_not_called()


def test_write_operations_use_thread_endpoints() -> None:
    client = MagicMock()
    labels = client.users.return_value.labels.return_value
    labels.list.return_value.execute.return_value = {"labels": []}
    labels.create.return_value.execute.return_value = {"id": "Label_9"}
    threads = client.users.return_value.threads.return_value
    service = _service(client)

    service.apply_label("t-1", "Triage/Processed")
    service.star_thread("t-1")
    service.mark_important("t-1")
    service.trash_thread("t-1")

    bodies = [call.kwargs["body"] for call in threads.modify.call_args_list]
    assert bodies == [
        {"addLabelIds": ["Label_9"]},
        {"addLabelIds": ["STARRED"]},
        {"addLabelIds": ["IMPORTANT"]},
    ]
    threads.trash.assert_called_once_with(userId="me", id="t-1")


def test_read_failure_on_one_thread_spares_the_rest_of_the_view() -> None:
    client = MagicMock()
    users = client.users.return_value
    threads = users.threads.return_value
    threads.list.return_value.execute.return_value = {"threads": [{"id": "t-1"}, {"id": "t-2"}, {"id": "t-3"}]}
    users.labels.return_value.list.return_value.execute.return_value = {
        "labels": [{"name": name, "id": name} for name in TriageLabels().all()]
    }

    def get_request(userId, id, format):  # noqa: A002, N803
        request = MagicMock()
        if id == "t-2":
            request.execute.side_effect = TimeoutError("transient")
        else:
            request.execute.return_value = _thread_resource(id)
        return request

    threads.get.side_effect = get_request

    report = TriageRunner(_service(client), TriageRules(), TriageLabels()).run(["inbox"])

    assert report.view_errors == {}
    assert [outcome.thread_id for outcome in report.outcomes] == ["t-1", "t-2", "t-3"]
    assert [outcome.thread_id for outcome in report.failures] == ["t-2"]
    assert report.failures[0].error == "TimeoutError: transient"
    marked = [
        call.kwargs["id"]
        for call in threads.modify.call_args_list
        if call.kwargs["body"] == {"addLabelIds": [TriageLabels().processed]}
    ]
    assert marked == ["t-1", "t-3"]
