from __future__ import annotations

import json
import logging
from typing import Iterable

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from utils.config import AccountConfig

LOGGER = logging.getLogger(__name__)
# Labeling, starring and trashing need modify; nothing here sends or deletes permanently.
SCOPES: Iterable[str] = ("https://www.googleapis.com/auth/gmail.modify",)


class AuthService:
    """OAuth2 credentials for one Gmail account, cached in its token file."""

    def __init__(self, account: AccountConfig):
        self._account = account

    def authenticate(self) -> Credentials:
        creds = self._cached_credentials()
        if creds and creds.valid:
            return creds

        if creds and creds.expired and creds.refresh_token:
            LOGGER.info("Refreshing expired Gmail token for %s", self._account.name)
            creds.refresh(Request())
        else:
            if not self._account.credentials_file.exists():
                raise FileNotFoundError(f"Missing OAuth client secrets: {self._account.credentials_file}")
            LOGGER.info("Starting OAuth consent flow with %s", self._account.credentials_file)
            flow = InstalledAppFlow.from_client_secrets_file(str(self._account.credentials_file), scopes=SCOPES)
            creds = flow.run_local_server(port=0)

        self._store(creds)
        return creds

    def _cached_credentials(self) -> Credentials | None:
        token_path = self._account.token_file
        if not token_path.exists():
            return None
        LOGGER.debug("Loading cached credential from %s", token_path)
        info = json.loads(token_path.read_text(encoding="utf-8"))
        return Credentials.from_authorized_user_info(info, SCOPES)

    def _store(self, creds: Credentials) -> None:
        token_path = self._account.token_file
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json(), encoding="utf-8")
        LOGGER.debug("Persisted OAuth token to %s", token_path)
