from pathlib import Path
from typing import Annotated, Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ccrag.cli import build_embedding_client, build_llm_client
from ccrag.config import get_settings
from ccrag.llm import LLMClient
from ccrag.services.rag import EmbeddingStore, answer_query, search
from ccrag.services.rag.embedding_client import EmbeddingClient
from ccrag.services.rag.errors import (
    DimensionMismatchError,
    OllamaClientError,
    SourceUnavailableError,
)

app = FastAPI(title="ccrag", version="0.1.0")


class AskRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    question: str = Field(min_length=1)
    k: int | None = Field(default=None, ge=1, le=50)


def get_store() -> EmbeddingStore:
    return EmbeddingStore(Path(get_settings().embed_dir).expanduser())


def get_embedding_client() -> EmbeddingClient:
    return build_embedding_client(get_settings())


def get_llm_client() -> LLMClient:
    return build_llm_client(get_settings())


def _hit_payload(source: str, score: float) -> dict[str, object]:
    return {"source": source, "score": round(score, 6)}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/search")
def rag_search(
    q: str,
    store: Annotated[EmbeddingStore, Depends(get_store)],
    embedding_client: Annotated[EmbeddingClient, Depends(get_embedding_client)],
    k: int | None = None,
) -> list[dict[str, object]]:
    if not q.strip():
        raise HTTPException(status_code=400, detail="q must not be empty")

    settings = get_settings()
    top_k = max(1, min(k or settings.max_results, 50))

    try:
        hits = search(
            q,
            store=store,
            embedding_client=embedding_client,
            top_k=top_k,
            embed_model=settings.embed_model,
        )
    except OllamaClientError as exc:
        raise HTTPException(status_code=502, detail=f"Embedding request failed: {exc}") from exc
    except DimensionMismatchError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return [_hit_payload(hit.source, hit.score) for hit in hits]


@app.post("/ask")
def ask(
    request: AskRequest,
    store: Annotated[EmbeddingStore, Depends(get_store)],
    embedding_client: Annotated[EmbeddingClient, Depends(get_embedding_client)],
    llm_client: Annotated[LLMClient, Depends(get_llm_client)],
) -> dict[str, Any]:
    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="question must not be empty")

    settings = get_settings()
    top_k = request.k or settings.max_results

    try:
        result = answer_query(
            question,
            store=store,
            embedding_client=embedding_client,
            llm_client=llm_client,
            top_k=top_k,
            embed_model=settings.embed_model,
        )
    except SourceUnavailableError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except OllamaClientError as exc:
        raise HTTPException(status_code=502, detail=f"Ollama request failed: {exc}") from exc
    except DimensionMismatchError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {
        "answer": result.answer,
        "sources": [_hit_payload(hit.source, hit.score) for hit in result.hits],
        "meta": {
            "provider": "ollama",
            "model": result.model,
            "used_fallback": result.used_fallback,
            "retrieval_k": top_k,
            "retrieved_count": len(result.hits),
            "ollama_address": settings.ollama_address,
        },
    }


def run() -> None:
    import uvicorn

    uvicorn.run("ccrag.main:app", host="127.0.0.1", port=8000, reload=False)


if __name__ == "__main__":
    run()
