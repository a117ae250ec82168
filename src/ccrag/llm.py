from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ccrag.services.rag.embedding_client import post_json
from ccrag.services.rag.errors import EmptyResultError, OllamaClientError


@dataclass(frozen=True)
class GenerationResult:
    answer: str
    model: str
    used_fallback: bool


class LLMClient(Protocol):
    def generate_answer(self, prompt: str) -> GenerationResult: ...


class OllamaGenerateClient:
    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        fallback_model: str = "",
        timeout_seconds: float = 180.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._fallback_model = fallback_model
        self._timeout_seconds = timeout_seconds

    def generate_answer(self, prompt: str) -> GenerationResult:
        candidates = self._model_candidates()
        for model, used_fallback in candidates:
            try:
                content = self._generate(model=model, prompt=prompt)
            except OllamaClientError:
                if used_fallback or len(candidates) == 1:
                    raise
                continue

            return GenerationResult(answer=content, model=model, used_fallback=used_fallback)

        raise EmptyResultError("No model candidates configured")

    def _model_candidates(self) -> list[tuple[str, bool]]:
        candidates: list[tuple[str, bool]] = [(self._model, False)]
        if self._fallback_model and self._fallback_model != self._model:
            candidates.append((self._fallback_model, True))
        return candidates

    def _generate(self, *, model: str, prompt: str) -> str:
        payload = post_json(
            f"{self._base_url}/api/generate",
            {"model": model, "prompt": prompt, "stream": False},
            timeout=self._timeout_seconds,
        )

        content = payload.get("response")
        if not isinstance(content, str) or not content.strip():
            raise EmptyResultError("Invalid generate payload: missing response text")

        return content.strip()
