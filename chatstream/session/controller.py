"""
Session Controller - Drives one streaming question/answer exchange at a time.

Writes are optimistic: the user message and an empty assistant placeholder
land in the thread before any network activity. Stream events then rewrite
the placeholder in place, and the terminal path decides what survives:

- completed: both messages stay
- stopped: the placeholder goes, the user message stays
- empty response: the placeholder goes, the prompt returns to the composer
- transport or upstream failure: both messages go, the prompt returns to the composer
"""

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from ..config import settings
from ..core.errors import (
    Cancelled,
    ChatError,
    EmptyResponseError,
    SessionBusyError,
    UpstreamError,
    ValidationError,
    user_message,
)
from ..core.logging_config import LoggerAdapter
from ..models.chat import ChatMessage, ChatThread, ThreadCollection
from ..models.events import DeltaEvent, DoneEvent, ErrorEvent, StreamEvent
from ..services.chat_service import ChatServiceClient
from ..storage.thread_store import ThreadStore
from ..stream.cancellation import CancellationHandle
from ..stream.reader import consume
from .transforms import append_exchange, remove_messages, replace_message_text

logger = logging.getLogger(__name__)

EMPTY_PROMPT_MESSAGE = "Please enter a prompt to continue."
NO_RESPONSE_MESSAGE = "No response received. Please try again."
STOPPED_MESSAGE = "Generation stopped."


class SessionState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class Composer:
    """Text input the user types prompts into."""
    text: str = ""
    focused: bool = False

    def fill(self, text: str) -> None:
        self.text = text
        self.focused = True

    def reset(self) -> None:
        self.text = ""
        self.focused = False


@dataclass
class Notice:
    message: str
    expires_at: float


@dataclass
class Session:
    """Bookkeeping for one in-flight exchange. Replaced wholesale on every ask."""
    target_thread_id: str
    user_message: ChatMessage
    assistant_message: ChatMessage
    cancellation: CancellationHandle = field(default_factory=CancellationHandle)
    accumulated_text: str = ""
    received_any_content: bool = False
    state: SessionState = SessionState.SENDING

    @classmethod
    def start(cls, thread_id: str, question: str) -> "Session":
        return cls(
            target_thread_id=thread_id,
            user_message=ChatMessage.create("user", question),
            assistant_message=ChatMessage.create("model", ""),
        )

    @property
    def live(self) -> bool:
        return self.state in (SessionState.SENDING, SessionState.STREAMING)


class SessionController:
    """
    Chat session state for the active thread.

    Only one exchange is live per controller; switching the active thread
    cancels it and resets composer, notice and pending retry.
    """

    def __init__(
        self,
        store: ThreadStore,
        client: ChatServiceClient,
        title_max_length: int = 48,
        notice_dismiss_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.client = client
        self.title_max_length = title_max_length
        self.notice_dismiss_seconds = notice_dismiss_seconds
        self._clock = clock

        self.composer = Composer()
        self.pending_retry: Optional[str] = None
        self.last_outcome: Optional[SessionState] = None
        self.last_error: Optional[ChatError] = None

        self._session: Optional[Session] = None
        self._notice: Optional[Notice] = None
        self._thread_id = store.active_thread_id
        self._unsubscribe = store.subscribe(self._on_store_change)

    @classmethod
    def from_settings(cls, store: ThreadStore, config: Any = settings, **client_kwargs) -> "SessionController":
        return cls(
            store,
            ChatServiceClient.from_settings(config, **client_kwargs),
            title_max_length=config.title_max_length,
            notice_dismiss_seconds=config.notice_dismiss_seconds,
        )

    # Views

    @property
    def thread(self) -> ChatThread:
        return self.store.active_thread

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.IDLE
        return self._session.state if self._session.live else SessionState.IDLE

    @property
    def loading(self) -> bool:
        return self.state in (SessionState.SENDING, SessionState.STREAMING)

    @property
    def error(self) -> str:
        if self._notice is None or self._clock() >= self._notice.expires_at:
            return ""
        return self._notice.message

    @property
    def chat_history(self) -> List[ChatMessage]:
        return list(self.thread.messages)

    @property
    def has_conversation(self) -> bool:
        return bool(self.thread.messages)

    @property
    def disable_send(self) -> bool:
        return self.loading or not self.composer.text.strip()

    @property
    def pending_question(self) -> Optional[str]:
        return self.pending_retry

    # Commands

    async def ask(self, prompt: Optional[str] = None) -> SessionState:
        """
        Send ``prompt`` (or the composer text) and stream the answer into the active thread.

        Returns:
            Terminal state of the exchange: COMPLETED, ABORTED or FAILED

        Raises:
            SessionBusyError: an exchange is already live on this thread
            ValidationError: the prompt is blank
        """
        thread = self.store.active_thread
        if self._session is not None and self._session.target_thread_id == thread.id:
            raise SessionBusyError("An answer is still streaming in this conversation.")

        question = (self.composer.text if prompt is None else prompt).strip()
        if not question:
            self._show_notice(EMPTY_PROMPT_MESSAGE)
            raise ValidationError(EMPTY_PROMPT_MESSAGE)

        if self._session is not None:
            self._session.cancellation.cancel()

        session = Session.start(thread.id, question)
        history = list(thread.messages)
        self._session = session
        self._notice = None
        self.composer.text = ""
        self.pending_retry = question
        self.last_error = None

        log = LoggerAdapter(logger, {
            "thread_id": thread.id,
            "message_id": session.assistant_message.id,
        })
        log.info(f"Exchange started: {question[:100]}")

        try:
            await self.store.update_thread(thread.id, append_exchange(
                session.user_message,
                session.assistant_message,
                title_max_length=self.title_max_length,
                default_title=self.store.default_title,
            ))
            outcome = await self._run(session, history, log)
        finally:
            if self._session is session:
                self._session = None

        self.last_outcome = outcome
        return outcome

    def stop(self) -> None:
        """Cancel the live exchange, if any."""
        session = self._session
        if session is None:
            return
        session.cancellation.cancel()
        self._session = None
        self.pending_retry = None
        self._show_notice(STOPPED_MESSAGE)

    def retry(self) -> None:
        """Put the last failed prompt back into the composer. Does not resend."""
        if not self.pending_retry:
            return
        self.composer.fill(self.pending_retry)
        self._notice = None

    def insert_prompt(self, prompt: str) -> None:
        self.composer.fill(prompt)
        self._notice = None

    async def clear_conversation(self) -> None:
        await self.store.clear_thread(self.store.active_thread_id)
        self.composer.reset()
        self._notice = None
        self.pending_retry = None

    def dismiss_notice(self) -> None:
        self._notice = None

    def close(self) -> None:
        self._unsubscribe()
        if self._session is not None:
            self._session.cancellation.cancel()
            self._session = None

    # Internals

    def _on_store_change(self, collection: ThreadCollection) -> None:
        if collection.active_thread_id == self._thread_id:
            return
        self._thread_id = collection.active_thread_id
        self.composer.reset()
        self._notice = None
        self.pending_retry = None
        if self._session is not None:
            self._session.cancellation.cancel()
            self._session = None

    def _show_notice(self, message: str) -> None:
        self._notice = Notice(message, self._clock() + self.notice_dismiss_seconds)

    def _is_current(self, session: Session) -> bool:
        return self._session is session

    async def _run(self, session: Session, history: List[ChatMessage], log: LoggerAdapter) -> SessionState:
        start_time = time.time()
        try:
            async with self.client.open_stream(
                history, session.user_message.text, session.cancellation
            ) as body:
                session.state = SessionState.STREAMING
                async with aclosing(consume(body, session.cancellation)) as events:
                    async for event in events:
                        await self._apply(session, event)
        except Cancelled:
            return await self._abort(session, log)
        except asyncio.CancelledError:
            session.cancellation.cancel()
            await self._abort(session, log)
            raise
        except Exception as e:
            return await self._fail(session, e, log)

        if session.cancellation.cancelled:
            return await self._abort(session, log)

        if not session.received_any_content or not session.accumulated_text.strip():
            return await self._empty(session, log)

        session.state = SessionState.COMPLETED
        if self._is_current(session):
            self.pending_retry = None
        log.info(
            f"Exchange completed",
            extra={"extra_fields": {
                "duration_ms": round((time.time() - start_time) * 1000, 2),
                "content_length": len(session.accumulated_text),
            }}
        )
        return SessionState.COMPLETED

    async def _apply(self, session: Session, event: StreamEvent) -> None:
        if isinstance(event, ErrorEvent):
            raise UpstreamError(event.message)

        if isinstance(event, DeltaEvent):
            session.accumulated_text += event.text
            session.received_any_content = True
        elif isinstance(event, DoneEvent):
            # The server's final text wins over the concatenated deltas.
            session.accumulated_text = event.text
            if event.text.strip():
                session.received_any_content = True

        await self.store.update_thread(
            session.target_thread_id,
            replace_message_text(session.assistant_message.id, session.accumulated_text),
        )

    async def _abort(self, session: Session, log: LoggerAdapter) -> SessionState:
        session.state = SessionState.ABORTED
        await self.store.update_thread(
            session.target_thread_id,
            remove_messages({session.assistant_message.id}),
        )
        if self._is_current(session):
            self.pending_retry = None
        log.info("Exchange stopped")
        return SessionState.ABORTED

    async def _empty(self, session: Session, log: LoggerAdapter) -> SessionState:
        session.state = SessionState.FAILED
        await self.store.update_thread(
            session.target_thread_id,
            remove_messages({session.assistant_message.id}),
        )
        error = EmptyResponseError(NO_RESPONSE_MESSAGE)
        self.last_error = error
        if self._is_current(session):
            self._restore_prompt(session, error)
        log.warning("Exchange produced no content")
        return SessionState.FAILED

    async def _fail(self, session: Session, error: Exception, log: LoggerAdapter) -> SessionState:
        session.state = SessionState.FAILED
        await self.store.update_thread(
            session.target_thread_id,
            remove_messages(
                {session.user_message.id, session.assistant_message.id},
                default_title=self.store.default_title,
                reset_title_when_empty=True,
            ),
        )
        self.last_error = error if isinstance(error, ChatError) else ChatError(str(error))
        if self._is_current(session):
            self._restore_prompt(session, error)
        log.error(f"Exchange failed: {error}", exc_info=not isinstance(error, ChatError))
        return SessionState.FAILED

    def _restore_prompt(self, session: Session, error: Exception) -> None:
        question = session.user_message.text
        self._show_notice(user_message(error))
        self.composer.text = question
        self.pending_retry = question
