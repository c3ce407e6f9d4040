"""
Firebase Realtime Database Channel

The remote state store, reached through the Realtime Database REST API:

- push:      PUT  /users/{code}/current_status.json
- subscribe: GET  /users/{code}/current_status.json  (text/event-stream)
- probe:     GET  /.json?shallow=true

The streaming endpoint sends server-sent events. "put" replaces the value
at a path, "patch" merges keys into it; both are applied to a local mirror
of the document and the whole mirrored document is yielded. "keep-alive"
is ignored. "cancel" and "auth_revoked" end the subscription with an error.

The access code is the only access control: it is the path under which the
state lives.
"""

import copy
import json
from typing import Any, AsyncIterator, Optional
from urllib.parse import quote

import httpx

from wealth_snapshot.config import FirebaseSettings, get_settings
from wealth_snapshot.exceptions import RemoteChannelError
from wealth_snapshot.log import get_logger
from wealth_snapshot.models.wealth import AppState
from wealth_snapshot.services.storage.interface import RemoteStateChannelInterface


logger = get_logger(__name__)


def state_path(access_code: str) -> str:
    """REST path of the state node for an access code."""
    return f"/users/{quote(access_code, safe='')}/current_status.json"


def _split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _child(container: Any, key: str) -> Any:
    if isinstance(container, list):
        if key.isdigit() and int(key) < len(container):
            return container[int(key)]
        return None
    if isinstance(container, dict):
        return container.get(key)
    return None


def _set_child(container: Any, key: str, value: Any) -> Any:
    """Set container[key] = value, returning the (possibly new) container."""
    if isinstance(container, list) and key.isdigit():
        index = int(key)
        if index < len(container):
            container[index] = value
            return container
        if index == len(container):
            container.append(value)
            return container
        container = {str(i): item for i, item in enumerate(container)}
    if not isinstance(container, dict):
        container = {}
    if value is None:
        container.pop(key, None)
    else:
        container[key] = value
    return container


def apply_event(document: Any, path: str, data: Any, merge: bool) -> Any:
    """
    Apply a put (merge=False) or patch (merge=True) event to the mirror.

    Returns the new document. The input document is not modified.
    """
    if merge:
        # Patch keys may themselves be relative paths
        for key, value in (data or {}).items():
            document = apply_event(document, f"{path.rstrip('/')}/{key}", value, merge=False)
        return document

    segments = _split_path(path)
    if not segments:
        return copy.deepcopy(data)
    document = copy.deepcopy(document)

    def _put(node: Any, remaining: list[str]) -> Any:
        key = remaining[0]
        if len(remaining) == 1:
            return _set_child(node, key, data)
        child = _put(_child(node, key), remaining[1:])
        return _set_child(node, key, child)

    return _put(document, segments) or None


class FirebaseStateChannel(RemoteStateChannelInterface):
    """
    Remote state channel backed by the Firebase Realtime Database REST API.
    """

    def __init__(
        self,
        settings: Optional[FirebaseSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().firebase
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.database_url,
            timeout=self._settings.request_timeout,
        )

    async def probe(self) -> None:
        try:
            response = await self._client.get("/.json", params={"shallow": "true"})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RemoteChannelError(f"Remote store not reachable: {e}")

    async def push(self, access_code: str, state: AppState) -> None:
        try:
            response = await self._client.put(
                state_path(access_code),
                json=state.to_wire(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RemoteChannelError(f"Failed to push state: {e}")

    async def subscribe(self, access_code: str) -> AsyncIterator[Optional[Any]]:
        path = state_path(access_code)
        document: Any = None

        try:
            async with self._client.stream(
                "GET",
                path,
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(self._settings.request_timeout, read=None),
            ) as response:
                response.raise_for_status()
                logger.info("remote_subscription_open", path=path)

                event: Optional[str] = None
                data_lines: list[str] = []

                async for line in response.aiter_lines():
                    if line.startswith("event:"):
                        event = line[len("event:"):].strip()
                        continue
                    if line.startswith("data:"):
                        data_lines.append(line[len("data:"):].strip())
                        continue
                    if line:
                        continue

                    # Blank line terminates one event
                    if event is None:
                        data_lines = []
                        continue
                    name, raw = event, "\n".join(data_lines)
                    event, data_lines = None, []

                    if name == "keep-alive":
                        continue
                    if name in ("cancel", "auth_revoked"):
                        raise RemoteChannelError(f"Subscription ended by server: {name}")
                    if name not in ("put", "patch"):
                        logger.debug("remote_event_ignored", event_name=name)
                        continue

                    try:
                        body = json.loads(raw)
                    except json.JSONDecodeError:
                        body = None
                    if not isinstance(body, dict):
                        logger.warning("remote_event_malformed", event_name=name)
                        continue

                    document = apply_event(
                        document,
                        body.get("path", "/"),
                        body.get("data"),
                        merge=(name == "patch"),
                    )
                    yield document
        except httpx.HTTPError as e:
            raise RemoteChannelError(f"Subscription failed: {e}")

    async def aclose(self) -> None:
        await self._client.aclose()
