from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import TextIO

from ccrag.config import Settings, get_settings
from ccrag.llm import LLMClient, OllamaGenerateClient
from ccrag.services.rag import EmbeddingStore, answer_query, ingest_documents, search
from ccrag.services.rag.chunker import build_chunker
from ccrag.services.rag.embedding_client import OllamaEmbeddingClient
from ccrag.services.rag.errors import RagError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ccrag",
        description="Local semantic search and question answering over text notes",
    )
    parser.add_argument(
        "-e",
        "--embed",
        action="store_true",
        help="Embedding mode. Process list of text files provided over stdin.",
    )
    parser.add_argument(
        "-q",
        "--query",
        default="",
        help="Query mode. Search for the given query and generate an LLM response "
        "with context from the similarity search.",
    )
    parser.add_argument(
        "-s",
        "--similarity-only",
        action="store_true",
        help="Run similarity search only. Output found file list.",
    )
    parser.add_argument(
        "--refresh-stale",
        action="store_true",
        help="Re-embed documents modified since their embedding record was written.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose mode.")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # keep -v output about ccrag, not every HTTP request
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _log_settings(settings: Settings, store: EmbeddingStore) -> None:
    logger = logging.getLogger("ccrag")
    logger.debug("Embedding storage directory: %s", store.directory)
    logger.debug("CCRAG_OLLAMA_ADDRESS: %s", settings.ollama_address)
    logger.debug("CCRAG_EMBED_MODEL: %s", settings.embed_model)
    logger.debug("CCRAG_LLM_MODEL: %s", settings.llm_model)
    logger.debug("CCRAG_WORDS_PER_CHUNK: %d", settings.chunk_size)
    logger.debug("CCRAG_CHUNK_POLICY: %s", settings.chunk_policy)


def build_embedding_client(settings: Settings) -> OllamaEmbeddingClient:
    return OllamaEmbeddingClient(
        base_url=settings.ollama_address,
        model=settings.embed_model,
        timeout_seconds=settings.timeout_seconds,
    )


def build_llm_client(settings: Settings) -> LLMClient:
    return OllamaGenerateClient(
        base_url=settings.ollama_address,
        model=settings.llm_model,
        fallback_model=settings.llm_fallback_model,
        timeout_seconds=settings.timeout_seconds,
    )


def run_embed(
    settings: Settings,
    store: EmbeddingStore,
    embedding_client: OllamaEmbeddingClient,
    *,
    stdin: TextIO,
    refresh_stale: bool = False,
) -> int:
    chunker = build_chunker(
        settings.chunk_policy,
        chunk_size=settings.chunk_size,
        tokenizer=embedding_client,
    )
    summary = ingest_documents(
        stdin.read().splitlines(),
        store=store,
        chunker=chunker,
        embedding_client=embedding_client,
        chunk_size=settings.chunk_size,
        embed_model=settings.embed_model,
        refresh_stale=refresh_stale,
        max_workers=settings.max_workers,
    )

    print(
        "[ccrag] "
        f"embedded={len(summary.embedded)} "
        f"skipped={len(summary.skipped)} "
        f"failed={len(summary.failed)}",
        flush=True,
    )
    for document_id, reason in summary.failed:
        print(f"[ccrag] failed: {document_id}: {reason}", file=sys.stderr, flush=True)

    return 1 if summary.failed else 0


def run_query(
    settings: Settings,
    store: EmbeddingStore,
    embedding_client: OllamaEmbeddingClient,
    *,
    query: str,
    similarity_only: bool,
    llm_client: LLMClient | None = None,
) -> int:
    if similarity_only:
        hits = search(
            query,
            store=store,
            embedding_client=embedding_client,
            top_k=settings.max_results,
            embed_model=settings.embed_model,
        )
        for hit in hits:
            print(hit.source, flush=True)
        return 0

    result = answer_query(
        query,
        store=store,
        embedding_client=embedding_client,
        llm_client=llm_client or build_llm_client(settings),
        top_k=settings.max_results,
        embed_model=settings.embed_model,
    )
    print(result.answer, flush=True)
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.embed and not args.query:
        parser.print_help(sys.stderr)
        raise SystemExit(1)

    try:
        settings = get_settings()
        store = EmbeddingStore(Path(settings.embed_dir).expanduser())
        store.ensure_directory()
        _log_settings(settings, store)
        embedding_client = build_embedding_client(settings)

        if args.embed:
            exit_code = run_embed(
                settings,
                store,
                embedding_client,
                stdin=sys.stdin,
                refresh_stale=args.refresh_stale,
            )
        else:
            exit_code = run_query(
                settings,
                store,
                embedding_client,
                query=args.query,
                similarity_only=args.similarity_only,
            )
    except (RagError, OSError, ValueError) as exc:
        print(f"[ccrag] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc

    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
