from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, NoReturn, Protocol, Sequence

from ..core import metrics
from ..core.config import ChatSettings
from ..core.errors import ChatRejectedError, ContextOverflowError
from ..core.logging import get_logger
from ..services.document_parser import MAX_DOCUMENT_BYTES, parse_document
from ..services.notifications import NotificationFeed
from .uploads import UploadedFile

logger = get_logger(name=__name__)

MessageRole = Literal["user", "assistant"]

SYSTEM_PROMPT = (
    "You are an assistant specialized in document analysis. Answer based on the content of the documents "
    "provided. Use Markdown to structure your answer when appropriate. If the question is not related to the "
    "documents, explain that you can only answer questions about the uploaded documents."
)

PROMPT_TEMPLATE = """These are the uploaded documents:

{documents}

User question: {question}
"""


class CompletionClient(Protocol):
    async def generate(self, prompt: str, *, system_prompt: str | None = None) -> str: ...


@dataclass(frozen=True, slots=True)
class DocumentContext:
    source_file_name: str
    extracted_text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    added_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class ConversationMessage:
    role: MessageRole
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class AnalysisItem:
    file_id: str
    filename: str
    status: Literal["succeeded", "failed"]
    character_count: int = 0
    error: str | None = None


def truncate_content(text: str, limit: int) -> tuple[str, bool]:
    if len(text) <= limit:
        return text, False
    return text[:limit], True


def format_document(document: DocumentContext, limit: int) -> str:
    body, truncated = truncate_content(document.extracted_text, limit)
    marker = "..." if truncated else ""
    return f"Document: {document.source_file_name}\nContent: {body}{marker}"


def select_documents(documents: Sequence[DocumentContext], settings: ChatSettings) -> list[DocumentContext]:
    """Pick the documents that fit the prompt budget, oldest dropped first.

    The newest document is always kept. Under the ``reject`` policy an
    oversized set raises ``ContextOverflowError`` instead.
    """
    sizes = [min(len(doc.extracted_text), settings.context_char_limit) for doc in documents]
    total = sum(sizes)
    if total <= settings.max_context_chars:
        return list(documents)
    if settings.overflow_policy == "reject":
        raise ContextOverflowError(
            f"The analyzed documents hold {total} characters, above the {settings.max_context_chars} "
            "character prompt budget. Clear some documents and try again."
        )
    start = 0
    while start < len(documents) - 1 and total > settings.max_context_chars:
        total -= sizes[start]
        start += 1
    logger.info("chat_context_trimmed", dropped=start, kept=len(documents) - start)
    return list(documents[start:])


def build_prompt(documents: Sequence[DocumentContext], question: str, settings: ChatSettings) -> str:
    context = "\n\n".join(format_document(doc, settings.context_char_limit) for doc in documents)
    return PROMPT_TEMPLATE.format(documents=context, question=question)


class DocumentChat:
    """Document contexts plus the visible transcript for one session.

    Both sequences are append-only tuples replaced in full on every change.
    Only the current question and the documents reach the model; the
    transcript is never replayed.
    """

    def __init__(
        self,
        *,
        settings: ChatSettings,
        notifications: NotificationFeed,
        max_file_bytes: int = MAX_DOCUMENT_BYTES,
    ) -> None:
        self._settings = settings
        self._notifications = notifications
        self._max_file_bytes = max_file_bytes
        self._documents: tuple[DocumentContext, ...] = ()
        self._transcript: tuple[ConversationMessage, ...] = ()
        self._generation = 0

    @property
    def documents(self) -> tuple[DocumentContext, ...]:
        return self._documents

    @property
    def transcript(self) -> tuple[ConversationMessage, ...]:
        return self._transcript

    def add_document(self, document: DocumentContext) -> None:
        self._documents = (*self._documents, document)

    async def analyze(self, files: Sequence[UploadedFile]) -> list[AnalysisItem]:
        if not files:
            await self._notifications.error("Add documents to analyze.", key="analyze")
            raise ChatRejectedError("Add documents to analyze.")

        results: list[AnalysisItem] = []
        for uploaded in files:
            key = f"analyze-{uploaded.id}"
            await self._notifications.loading(f"Analyzing {uploaded.name}...", key=key)
            try:
                parsed = await asyncio.to_thread(
                    parse_document,
                    uploaded.data,
                    filename=uploaded.name,
                    content_type=uploaded.content_type,
                    max_bytes=self._max_file_bytes,
                )
            except Exception as exc:
                logger.warning("document_analysis_failed", file_id=uploaded.id, filename=uploaded.name, error=str(exc))
                metrics.record_document_analysis(outcome="failed")
                await self._notifications.error(f"Could not analyze {uploaded.name}.", key=key)
                results.append(
                    AnalysisItem(file_id=uploaded.id, filename=uploaded.name, status="failed", error=str(exc))
                )
                continue

            self.add_document(
                DocumentContext(
                    source_file_name=uploaded.name,
                    extracted_text=parsed.text,
                    metadata={**parsed.metadata, "size_bytes": uploaded.size_bytes},
                )
            )
            metrics.record_document_analysis(outcome="succeeded")
            await self._notifications.success(f"{uploaded.name} analyzed.", key=key)
            results.append(
                AnalysisItem(
                    file_id=uploaded.id,
                    filename=uploaded.name,
                    status="succeeded",
                    character_count=len(parsed.text),
                )
            )

        failed = sum(1 for item in results if item.status == "failed")
        if failed == 0:
            await self._notifications.success("All documents were analyzed. You can ask questions now.", key="analyze")
        else:
            await self._notifications.error(f"{failed} of {len(results)} document(s) could not be analyzed.", key="analyze")
        return results

    async def ask(self, question: str, *, llm: CompletionClient) -> ConversationMessage:
        """Send one question with every document context and record the answer."""
        if not question.strip():
            await self._reject("Type a question first.")
        if not self._documents:
            await self._reject("Analyze some documents before asking questions.")
        try:
            documents = select_documents(self._documents, self._settings)
        except ContextOverflowError as exc:
            await self._reject(str(exc), error=exc)

        prompt = build_prompt(documents, question, self._settings)
        generation = self._generation
        self._append(ConversationMessage(role="user", content=question))

        try:
            answer = await llm.generate(prompt, system_prompt=SYSTEM_PROMPT)
        except Exception as exc:
            logger.error(
                "chat_request_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                documents=len(documents),
            )
            metrics.record_chat_request(outcome="failed")
            reply = self._append_if_current(
                ConversationMessage(role="assistant", content=self._settings.apology_message), generation
            )
            await self._notifications.error(f"The assistant could not answer: {type(exc).__name__}.", key="chat")
            return reply

        metrics.record_chat_request(outcome="answered")
        logger.info("chat_answered", documents=len(documents), prompt_chars=len(prompt), answer_chars=len(answer))
        return self._append_if_current(ConversationMessage(role="assistant", content=answer), generation)

    def clear_transcript(self) -> None:
        self._transcript = ()
        self._generation += 1

    def clear_documents(self) -> None:
        self._documents = ()
        self._transcript = ()
        self._generation += 1

    def _append(self, message: ConversationMessage) -> ConversationMessage:
        self._transcript = (*self._transcript, message)
        return message

    def _append_if_current(self, message: ConversationMessage, generation: int) -> ConversationMessage:
        """Record a reply only if no clear happened while the model was answering."""
        if generation != self._generation:
            logger.info("chat_reply_discarded", reason="cleared_during_request")
            return message
        return self._append(message)

    async def _reject(self, message: str, *, error: ChatRejectedError | None = None) -> NoReturn:
        metrics.record_chat_request(outcome="rejected")
        await self._notifications.error(message, key="chat")
        if error is not None:
            raise error
        raise ChatRejectedError(message)


__all__ = [
    "AnalysisItem",
    "CompletionClient",
    "ConversationMessage",
    "DocumentChat",
    "DocumentContext",
    "PROMPT_TEMPLATE",
    "SYSTEM_PROMPT",
    "build_prompt",
    "format_document",
    "select_documents",
    "truncate_content",
]
