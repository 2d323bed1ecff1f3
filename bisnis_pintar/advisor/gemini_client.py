"""
Gemini-backed business advisor.

Builds a prompt from the current metrics and a bounded sample of items, sends
it to the `generateContent` REST endpoint and returns the model's text. The
public `analyze()` never raises: a missing key, an empty reply or any transport
or API failure turns into a fixed Indonesian fallback message.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Sequence

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter
from tenacity.wait import wait_base

from bisnis_pintar.errors import AdvisorError
from bisnis_pintar.inventory.models import BusinessItem, BusinessMetrics
from bisnis_pintar.utils.config import AdvisorSettings
from bisnis_pintar.utils.money import to_json_number

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "API Key Gemini tidak ditemukan. Mohon pastikan environment variable API_KEY telah diatur."
)
EMPTY_REPLY_MESSAGE = "Maaf, saya tidak dapat menghasilkan analisa saat ini."
FAILURE_MESSAGE = "Terjadi kesalahan saat menghubungi asisten AI. Coba lagi nanti."

SYSTEM_PROMPT_TEMPLATE = """
Anda adalah konsultan bisnis ahli untuk UMKM (Usaha Mikro Kecil Menengah) di Indonesia.
Tugas anda adalah membantu pemilik bisnis menganalisis data stok dan keuangan mereka.

Konteks Data Bisnis Saat Ini (JSON):
{context}

Instruksi:
1. Jawab pertanyaan pengguna berdasarkan data di atas.
2. Berikan saran taktis untuk meningkatkan keuntungan, mengelola stok mati, atau strategi harga.
3. Gunakan Bahasa Indonesia yang profesional namun mudah dipahami (ramah).
4. Format jawaban dengan rapi (gunakan bullet points jika perlu).
5. Jika data kosong, berikan saran umum untuk memulai bisnis.
"""


def build_context(
    items: Sequence[BusinessItem], metrics: BusinessMetrics, sample_size: int = 20
) -> Dict[str, Any]:
    """Metrics summary plus the first `sample_size` items, trimmed to what the model needs."""
    return {
        "summary": metrics.to_dict(),
        "inventory_sample": [
            {
                "name": item.name,
                "stock": item.stock,
                "buy": to_json_number(item.capital_price),
                "sell": to_json_number(item.selling_price),
                "margin": to_json_number(item.margin),
            }
            for item in list(items)[: max(sample_size, 0)]
        ],
    }


def build_prompt(context: Dict[str, Any]) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(context=json.dumps(context, ensure_ascii=False))


def extract_text(payload: Any) -> str:
    """Concatenate the text parts of the first candidate, '' when there are none."""
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict)).strip()


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, AdvisorError):
        return exc.status_code == 429 or 500 <= exc.status_code < 600
    return False


class GeminiAdvisor:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_s: float = 60.0,
        retry_attempts: int = 3,
        sample_size: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        wait: Optional[wait_base] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = httpx.Timeout(timeout_s, connect=min(timeout_s, 5.0))
        self.retry_attempts = max(int(retry_attempts), 1)
        self.sample_size = sample_size
        self._transport = transport
        self._wait = wait or wait_exponential_jitter(initial=1, max=8)

    @classmethod
    def from_settings(
        cls, settings: AdvisorSettings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "GeminiAdvisor":
        return cls(
            api_key=settings.resolve_api_key(),
            model=settings.model,
            api_base=settings.api_base,
            timeout_s=settings.timeout_s,
            retry_attempts=settings.retry_attempts,
            sample_size=settings.sample_size,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _body(self, prompt: str, question: str) -> Dict[str, Any]:
        return {
            "contents": [
                {"role": "user", "parts": [{"text": prompt}]},
                {"role": "user", "parts": [{"text": question}]},
            ]
        }

    async def _post_once(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> Dict[str, Any]:
        resp = await client.post(self.endpoint, headers=self._headers(), json=body)
        if 200 <= resp.status_code < 300:
            try:
                return resp.json()
            except ValueError as exc:
                raise AdvisorError("Response is not JSON", resp.status_code, resp.text) from exc
        try:
            parsed = resp.json()
        except ValueError:
            parsed = {}
        err = parsed.get("error") if isinstance(parsed, dict) else None
        if not isinstance(err, dict):
            err = {}
        raise AdvisorError(
            message=str(err.get("message", "Gemini error")),
            status_code=resp.status_code,
            response_text=resp.text,
        )

    async def generate(self, prompt: str, question: str) -> str:
        """Raw call; raises AdvisorError or httpx errors after retries are exhausted."""
        if not self.api_key:
            raise AdvisorError("Missing Gemini API key", status_code=401)
        body = self._body(prompt, question)
        logger.info("Gemini POST %s", self.endpoint)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_retryable),
                stop=stop_after_attempt(self.retry_attempts),
                wait=self._wait,
                reraise=True,
            ):
                with attempt:
                    payload = await self._post_once(client, body)
        return extract_text(payload)

    async def analyze(
        self, items: Sequence[BusinessItem], metrics: BusinessMetrics, question: str
    ) -> str:
        """Answer `question` about the given snapshot, or return a fallback message."""
        if not self.api_key:
            return MISSING_KEY_MESSAGE
        prompt = build_prompt(build_context(items, metrics, self.sample_size))
        try:
            text = await self.generate(prompt, question)
        except (AdvisorError, httpx.HTTPError):
            logger.exception("Gemini API error")
            return FAILURE_MESSAGE
        return text or EMPTY_REPLY_MESSAGE


__all__ = [
    "EMPTY_REPLY_MESSAGE",
    "FAILURE_MESSAGE",
    "GeminiAdvisor",
    "MISSING_KEY_MESSAGE",
    "build_context",
    "build_prompt",
    "extract_text",
]
