from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

CHUNK_POLICIES = {"words", "tokens"}


def _to_int(value: str | None, *, default: int, minimum: int) -> int:
    if value is None:
        return default
    parsed = int(value)
    return max(minimum, parsed)


def _to_policy(value: str | None, *, default: str) -> str:
    if value is None or not value.strip():
        return default
    policy = value.strip().lower()
    if policy not in CHUNK_POLICIES:
        raise ValueError(
            f"CCRAG_CHUNK_POLICY must be one of {sorted(CHUNK_POLICIES)}, got {value!r}"
        )
    return policy


def _default_embed_dir() -> str:
    return str(Path.home() / ".ccrag" / "embed")


@dataclass(frozen=True)
class Settings:
    ollama_address: str
    embed_model: str
    llm_model: str
    llm_fallback_model: str
    max_results: int
    chunk_size: int
    chunk_policy: str
    embed_dir: str
    timeout_seconds: float
    max_workers: int


@lru_cache
def get_settings() -> Settings:
    return Settings(
        ollama_address=os.getenv("CCRAG_OLLAMA_ADDRESS", "http://localhost:11434"),
        embed_model=os.getenv("CCRAG_EMBED_MODEL", "mxbai-embed-large"),
        llm_model=os.getenv("CCRAG_LLM_MODEL", "mistral:latest"),
        llm_fallback_model=os.getenv("CCRAG_LLM_FALLBACK_MODEL", ""),
        max_results=_to_int(os.getenv("CCRAG_MAX_RESULTS"), default=10, minimum=1),
        chunk_size=_to_int(os.getenv("CCRAG_WORDS_PER_CHUNK"), default=100, minimum=1),
        chunk_policy=_to_policy(os.getenv("CCRAG_CHUNK_POLICY"), default="words"),
        embed_dir=os.getenv("CCRAG_EMBED_DIR") or _default_embed_dir(),
        timeout_seconds=float(os.getenv("CCRAG_TIMEOUT_SECONDS", "180")),
        max_workers=_to_int(os.getenv("CCRAG_MAX_WORKERS"), default=4, minimum=1),
    )
