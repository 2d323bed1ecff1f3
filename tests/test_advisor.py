from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import List

import httpx
import pytest
from tenacity import wait_none

from bisnis_pintar.advisor import gemini_client
from bisnis_pintar.advisor.chat import CONNECTION_ERROR_MESSAGE, GREETING, ChatSession
from bisnis_pintar.advisor.gemini_client import GeminiAdvisor, build_context, extract_text
from bisnis_pintar.errors import AdvisorBusyError
from bisnis_pintar.inventory.models import BusinessItem
from bisnis_pintar.inventory.snapshots import MemorySnapshotStore
from bisnis_pintar.inventory.store import InventoryStore


def _items(count: int) -> List[BusinessItem]:
    return [
        BusinessItem(str(i), f"Barang {i}", i, Decimal("100"), Decimal("130"), "Umum")
        for i in range(count)
    ]


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _advisor(handler, **kwargs) -> GeminiAdvisor:
    kwargs.setdefault("retry_attempts", 1)
    return GeminiAdvisor(
        "test-key",
        transport=httpx.MockTransport(handler),
        wait=wait_none(),
        **kwargs,
    )


def test_context_samples_first_twenty_items():
    store = InventoryStore(MemorySnapshotStore(), _items(25))
    context = build_context(store.items, store.metrics())
    assert len(context["inventory_sample"]) == 20
    assert context["inventory_sample"][0] == {"name": "Barang 0", "stock": 0, "buy": 100, "sell": 130, "margin": 30}
    assert context["summary"]["totalItems"] == 25


def test_extract_text_joins_parts():
    payload = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
    assert extract_text(payload) == "ab"
    assert extract_text({}) == ""
    assert extract_text({"candidates": ["oops"]}) == ""
    assert extract_text({"candidates": [{"content": "teks"}]}) == ""
    assert extract_text({"candidates": [{"content": {"parts": "teks"}}]}) == ""
    assert extract_text([]) == ""


def test_analyze_sends_prompt_and_question():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_reply("Naikkan harga kopi."))

    store = InventoryStore(MemorySnapshotStore(), _items(2))
    answer = asyncio.run(_advisor(handler).analyze(store.items, store.metrics(), "Apa saran Anda?"))

    assert answer == "Naikkan harga kopi."
    assert seen["url"].endswith("/models/gemini-2.5-flash:generateContent")
    assert seen["key"] == "test-key"
    contents = seen["body"]["contents"]
    assert [c["role"] for c in contents] == ["user", "user"]
    assert "Barang 1" in contents[0]["parts"][0]["text"]
    assert contents[1]["parts"][0]["text"] == "Apa saran Anda?"


def test_missing_key_returns_fallback_without_request():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    advisor = GeminiAdvisor("", transport=httpx.MockTransport(handler))
    store = InventoryStore(MemorySnapshotStore())
    answer = asyncio.run(advisor.analyze(store.items, store.metrics(), "halo"))
    assert answer == gemini_client.MISSING_KEY_MESSAGE


def test_api_error_returns_failure_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"code": 400, "message": "API key not valid"}})

    store = InventoryStore(MemorySnapshotStore())
    answer = asyncio.run(_advisor(handler).analyze(store.items, store.metrics(), "halo"))
    assert answer == gemini_client.FAILURE_MESSAGE


def test_empty_reply_returns_apology():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    store = InventoryStore(MemorySnapshotStore())
    answer = asyncio.run(_advisor(handler).analyze(store.items, store.metrics(), "halo"))
    assert answer == gemini_client.EMPTY_REPLY_MESSAGE


def test_server_error_is_retried():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(503, json={"error": {"message": "overloaded"}})
        return httpx.Response(200, json=_reply("ok"))

    store = InventoryStore(MemorySnapshotStore())
    answer = asyncio.run(_advisor(handler, retry_attempts=3).analyze(store.items, store.metrics(), "halo"))
    assert answer == "ok"
    assert calls["n"] == 2


def test_malformed_success_reply_returns_apology():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": ["oops"]})

    store = InventoryStore(MemorySnapshotStore())
    answer = asyncio.run(_advisor(handler).analyze(store.items, store.metrics(), "halo"))
    assert answer == gemini_client.EMPTY_REPLY_MESSAGE


class StubAdvisor:
    def __init__(self, answer: str = "Jawaban") -> None:
        self.answer = answer
        self.calls = []
        self.gate: asyncio.Event | None = None

    async def analyze(self, items, metrics, question):
        self.calls.append((items, metrics, question))
        if self.gate is not None:
            await self.gate.wait()
        return self.answer


def test_chat_session_records_transcript():
    store = InventoryStore(MemorySnapshotStore(), _items(3))
    advisor = StubAdvisor("Stok aman.")
    chat = ChatSession(store, advisor)

    reply = asyncio.run(chat.ask("  Bagaimana stok saya?  "))

    assert reply.text == "Stok aman."
    assert [m.role for m in chat.messages] == ["model", "user", "model"]
    assert chat.messages[0].text == GREETING
    assert chat.messages[1].text == "Bagaimana stok saya?"
    items, metrics, question = advisor.calls[0]
    assert len(items) == 3 and metrics.total_items == 3
    assert asyncio.run(chat.ask("   ")) is None
    assert len(advisor.calls) == 1


def test_chat_session_allows_one_pending_question():
    store = InventoryStore(MemorySnapshotStore())
    advisor = StubAdvisor()
    chat = ChatSession(store, advisor)

    async def scenario():
        advisor.gate = asyncio.Event()
        first = asyncio.create_task(chat.ask("pertama"))
        await asyncio.sleep(0)
        assert chat.pending
        with pytest.raises(AdvisorBusyError):
            await chat.ask("kedua")
        advisor.gate.set()
        return await first

    reply = asyncio.run(scenario())
    assert reply.text == "Jawaban"
    assert not chat.pending


def test_chat_discards_reply_after_close():
    store = InventoryStore(MemorySnapshotStore())
    advisor = StubAdvisor()
    chat = ChatSession(store, advisor)

    async def scenario():
        advisor.gate = asyncio.Event()
        task = asyncio.create_task(chat.ask("halo"))
        await asyncio.sleep(0)
        chat.close()
        advisor.gate.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert [m.role for m in chat.messages] == ["model", "user"]


class BrokenAdvisor:
    async def analyze(self, items, metrics, question):
        raise RuntimeError("socket closed")


def test_chat_answers_advisor_failure_with_connection_error():
    chat = ChatSession(InventoryStore(MemorySnapshotStore()), BrokenAdvisor())

    reply = asyncio.run(chat.ask("halo"))

    assert reply.text == CONNECTION_ERROR_MESSAGE
    assert [m.role for m in chat.messages] == ["model", "user", "model"]
    assert not chat.pending
