"""Flash messages shown on the next rendered page of a browser session."""

import json
from typing import Dict, List

from oauth2_login.infrastructure.session.store import SessionStore

DANGER = "danger"
INFO = "info"


class FlashMessages:
    """Queue of user-visible messages kept in the session"""

    session_key = "flash_messages"

    def __init__(self, session: SessionStore):
        self.session = session

    async def add_message(self, text: str, status: str = INFO) -> None:
        messages = await self._load()
        messages.append({"text": text, "status": status})
        await self.session.put(self.session_key, json.dumps(messages))

    async def pop_messages(self) -> List[Dict[str, str]]:
        """Return and clear all pending messages"""
        messages = await self._load()
        if messages:
            await self.session.forget(self.session_key)
        return messages

    async def _load(self) -> List[Dict[str, str]]:
        raw = await self.session.get(self.session_key)
        return json.loads(raw) if raw else []
