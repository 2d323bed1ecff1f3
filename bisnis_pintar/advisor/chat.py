"""
Chat transcript around the advisor.

One question may be outstanding at a time. The advisor receives the items and
metrics as they were when the question was asked and never touches the store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from bisnis_pintar.errors import AdvisorBusyError
from bisnis_pintar.inventory.models import BusinessItem, BusinessMetrics
from bisnis_pintar.inventory.store import InventoryStore

logger = logging.getLogger(__name__)

GREETING = (
    "Halo! Saya asisten bisnis cerdas Anda. Ada yang bisa saya bantu terkait hitungan stok, "
    "analisis keuntungan, atau strategi harga hari ini?"
)
CONNECTION_ERROR_MESSAGE = "Maaf, terjadi kesalahan koneksi."


class Advisor(Protocol):
    async def analyze(
        self, items: Sequence[BusinessItem], metrics: BusinessMetrics, question: str
    ) -> str:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    text: str
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "text": self.text, "timestamp": self.timestamp.isoformat()}


class ChatSession:
    def __init__(self, store: InventoryStore, advisor: Advisor) -> None:
        self.store = store
        self.advisor = advisor
        self.messages: List[ChatMessage] = [ChatMessage(role="model", text=GREETING)]
        self.pending = False
        self.closed = False

    async def ask(self, question: str) -> Optional[ChatMessage]:
        """
        Send `question` to the advisor and append both sides to the transcript.

        Returns the model's reply, or None when the question is blank or the
        session was closed before the reply arrived (the reply is dropped).
        Raises AdvisorBusyError while another question is pending. An advisor
        that raises is answered with CONNECTION_ERROR_MESSAGE.
        """
        text = (question or "").strip()
        if not text:
            return None
        if self.pending:
            raise AdvisorBusyError("Tunggu jawaban sebelumnya selesai.")
        if self.closed:
            return None

        self.messages.append(ChatMessage(role="user", text=text))
        items = self.store.items
        metrics = self.store.metrics()
        self.pending = True
        try:
            answer = await self.advisor.analyze(items, metrics, text)
        except Exception:
            logger.exception("Advisor failed to answer")
            answer = CONNECTION_ERROR_MESSAGE
        finally:
            self.pending = False

        if self.closed:
            logger.info("Chat closed while waiting; discarding advisor reply")
            return None
        reply = ChatMessage(role="model", text=answer)
        self.messages.append(reply)
        return reply

    def close(self) -> None:
        self.closed = True

    def transcript(self) -> List[Dict[str, Any]]:
        return [message.to_dict() for message in self.messages]


__all__ = ["Advisor", "CONNECTION_ERROR_MESSAGE", "ChatMessage", "ChatSession", "GREETING"]
