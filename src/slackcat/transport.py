"""Slack Web API transport used to post batches and upload files."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol
from urllib.parse import quote, urlencode

import requests
from requests import Session


class TransportError(RuntimeError):
    """Any failure talking to the remote chat service."""


class AuthenticationError(TransportError):
    """The configured token was rejected."""


class ChannelNotFoundError(TransportError):
    """No channel, group or direct message matches the requested name."""


class SlackAPIError(TransportError):
    """The Slack API answered with ``ok: false``."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error


@dataclass(frozen=True)
class Identity:
    team: str
    user: str


class Transport(Protocol):
    """Interface the delivery pipeline and upload path depend on."""

    def authenticate(self) -> Identity: ...

    def resolve_channel(self, name: str) -> str: ...

    def post_message(self, channel_id: str, text: str) -> None: ...

    def upload_file(
        self,
        channel_id: str,
        path: str | Path,
        name: str,
        filetype: str | None = None,
        comment: str | None = None,
    ) -> None: ...


_AUTH_ERRORS = {"invalid_auth", "not_authed", "account_inactive", "token_revoked", "token_expired"}

# Entity escapes already in form-encoded shape; everything else is quoted.
_ENTITY_TOKENS = re.compile(r"(%26(?:amp|lt|gt)%3B)")


def _form_text(text: str) -> str:
    parts = _ENTITY_TOKENS.split(text)
    return "".join(part if index % 2 else quote(part, safe="") for index, part in enumerate(parts))


class SlackTransport:
    """Blocking Slack Web API client backed by a persistent HTTP session."""

    def __init__(
        self,
        token: str,
        *,
        api_url: str = "https://slack.com/api",
        timeout: float = 30.0,
        logger: logging.Logger,
        session: Optional[Session] = None,
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger
        self._http: Session = session or Session()
        self._http.headers.update({"Authorization": f"Bearer {token}"})

    # ------------------------------------------------------------------
    def authenticate(self) -> Identity:
        try:
            data = self._call("auth.test")
        except SlackAPIError as exc:
            if exc.error in _AUTH_ERRORS:
                raise AuthenticationError(f"Slack API error: {exc.error}") from exc
            raise
        return Identity(team=str(data.get("team", "")), user=str(data.get("user", "")))

    # ------------------------------------------------------------------
    def resolve_channel(self, name: str) -> str:
        """Return the id for ``name`` looking at channels, then groups, then IMs."""

        target = name.lstrip("#@")
        for conversation in self._conversations("public_channel"):
            if conversation.get("name") == target:
                return str(conversation["id"])
        for conversation in self._conversations("private_channel"):
            if conversation.get("name") == target:
                return str(conversation["id"])
        user_id = self._find_user_id(target)
        if user_id:
            for conversation in self._conversations("im"):
                if conversation.get("user") == user_id:
                    return str(conversation["id"])
        raise ChannelNotFoundError("No such channel, group, or im")

    # ------------------------------------------------------------------
    def post_message(self, channel_id: str, text: str) -> None:
        body = urlencode({"channel": channel_id}) + "&text=" + _form_text(text)
        response = self._request(
            "chat.postMessage",
            data=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        self._check("chat.postMessage", response)

    # ------------------------------------------------------------------
    def upload_file(
        self,
        channel_id: str,
        path: str | Path,
        name: str,
        filetype: str | None = None,
        comment: str | None = None,
    ) -> None:
        file_path = Path(path)
        try:
            length = os.path.getsize(file_path)
        except OSError as exc:
            raise TransportError(f"Cannot read {file_path}: {exc}") from exc

        params: Dict[str, Any] = {"filename": name, "length": length}
        if filetype:
            params["snippet_type"] = filetype
        ticket = self._call("files.getUploadURLExternal", data=params)
        upload_url = ticket.get("upload_url")
        file_id = ticket.get("file_id")
        if not upload_url or not file_id:
            raise TransportError("files.getUploadURLExternal returned no upload URL")

        with file_path.open("rb") as handle:
            try:
                response = self._http.post(upload_url, data=handle, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                raise TransportError(f"Upload of {file_path} failed: {exc}") from exc

        completion: Dict[str, Any] = {
            "files": [{"id": file_id, "title": name}],
            "channel_id": channel_id,
        }
        if comment:
            completion["initial_comment"] = comment
        self._call("files.completeUploadExternal", json=completion)

    # ------------------------------------------------------------------
    def close(self) -> None:
        self._http.close()
        self.logger.debug("Slack transport closed")

    # ------------------------------------------------------------------
    def _conversations(self, types: str) -> Iterator[Mapping[str, Any]]:
        cursor = ""
        while True:
            params: Dict[str, Any] = {"types": types, "limit": 200, "exclude_archived": "true"}
            if cursor:
                params["cursor"] = cursor
            data = self._call("conversations.list", data=params)
            yield from data.get("channels", [])
            cursor = _next_cursor(data)
            if not cursor:
                return

    def _find_user_id(self, name: str) -> Optional[str]:
        cursor = ""
        while True:
            params: Dict[str, Any] = {"limit": 200}
            if cursor:
                params["cursor"] = cursor
            data = self._call("users.list", data=params)
            members: List[Mapping[str, Any]] = data.get("members", [])
            for member in members:
                if member.get("name") == name:
                    return str(member["id"])
            cursor = _next_cursor(data)
            if not cursor:
                return None

    def _call(self, method: str, **kwargs: Any) -> Dict[str, Any]:
        response = self._request(method, **kwargs)
        return self._check(method, response)

    def _request(self, method: str, **kwargs: Any) -> requests.Response:
        url = f"{self.api_url}/{method}"
        try:
            response = self._http.post(url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            self.logger.debug("%s request failed: %s", method, exc)
            raise TransportError(f"{method} request failed: {exc}") from exc
        return response

    @staticmethod
    def _check(method: str, response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"{method} returned invalid JSON") from exc
        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error", "unknown_error") if isinstance(data, dict) else "unknown_error"
            raise SlackAPIError(method, str(error))
        return data


def _next_cursor(data: Mapping[str, Any]) -> str:
    metadata = data.get("response_metadata") or {}
    return str(metadata.get("next_cursor") or "")


__all__ = [
    "AuthenticationError",
    "ChannelNotFoundError",
    "Identity",
    "SlackAPIError",
    "SlackTransport",
    "Transport",
    "TransportError",
]
