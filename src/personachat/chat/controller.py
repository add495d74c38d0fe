"""Conversation controller.

Top-level orchestration of one persona conversation: rehydrates history,
accepts user input, streams the reply through the typewriter scheduler and
persists finished turns.

Hidden design decisions:
- Busy rejection by state check (no locks; check and set happen without an
  intervening await)
- Failure substitution in the assistant placeholder
- Write-behind persistence through a never-fail store
"""

import asyncio
from contextlib import aclosing
from enum import Enum
from typing import Any

from ..errors import EmptyReplyError, FailureKind, GenerationError
from ..memory import ChatMessage, Feedback, MessageStore, SafeMessageStore
from ..persona import PersonaContext, ResumeData, build_welcome_message
from .callbacks import ConversationCallback
from .config import FAILURE_MESSAGES, FAILURE_NOTICES, INTERRUPTION_SEPARATOR, TICK_INTERVAL
from .normalizer import normalize_history
from .streaming import StreamingClient
from .typewriter import TypewriterScheduler


class ConversationState(str, Enum):
    """Lifecycle of a single exchange."""

    IDLE = "idle"
    SENDING = "sending"  # user message appended, request started
    STREAMING = "streaming"  # first fragment received
    REVEALING = "revealing"  # stream ended, scheduler still draining


class ConversationController:
    """Orchestrates one conversation, keyed by an external conversation key.

    Usage:
        controller = ConversationController(store, client, callback)
        await controller.initialize("jane-doe-dev", persona, resume)
        reply = await controller.send("What did you build at Acme?")
    """

    def __init__(
        self,
        store: MessageStore,
        client: StreamingClient,
        callback: ConversationCallback | None = None,
        tick_interval: float = TICK_INTERVAL,
    ):
        """Initialize the controller.

        Args:
            store: Message store (wrapped in SafeMessageStore if it is not one)
            client: Streaming client for generation
            callback: Receiver of conversation updates
            tick_interval: Seconds between typewriter reveal ticks
        """
        self._store = store if isinstance(store, SafeMessageStore) else SafeMessageStore(store)
        self._client = client
        self._callback = callback or ConversationCallback()
        self._tick_interval = tick_interval
        self._debug_callback: Any | None = None

        self._key: str | None = None
        self._persona: PersonaContext | None = None
        self._resume: ResumeData | None = None
        self._messages: list[ChatMessage] = []
        self._state = ConversationState.IDLE
        self._send_task: asyncio.Task | None = None
        self._scheduler: TypewriterScheduler | None = None
        # Bumped whenever the conversation is replaced, so a cancelled send
        # does not touch the new one
        self._epoch = 0

    # -- properties ---------------------------------------------------------

    @property
    def conversation_key(self) -> str | None:
        return self._key

    @property
    def persona(self) -> PersonaContext | None:
        return self._persona

    @property
    def messages(self) -> list[ChatMessage]:
        """Current in-memory messages (authoritative for this session)."""
        return list(self._messages)

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not ConversationState.IDLE

    @property
    def store(self) -> SafeMessageStore:
        return self._store

    def set_callback(self, callback: ConversationCallback) -> None:
        """Replace the receiver of conversation updates."""
        self._callback = callback

    # -- diagnostics --------------------------------------------------------

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback for the controller, its store and client.

        Args:
            callback: Callable(level: str, component: str, message: str)
                      level: 'debug', 'info', 'warning', 'error'
        """
        self._debug_callback = callback
        self._store.set_debug_callback(callback)
        self._client.set_debug_callback(callback)

    def _debug(self, level: str, component: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, component, message)

    # -- internal helpers ---------------------------------------------------

    def _set_state(self, state: ConversationState) -> None:
        if state is self._state:
            return
        self._state = state
        self._debug("debug", "Chat", f"State -> {state.value}")
        self._callback.on_state_changed(state)

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self._callback.on_message_added(message)

    def _replace_messages(self, messages: list[ChatMessage]) -> None:
        self._messages = messages
        self._callback.on_messages_replaced(self.messages)

    def _find(self, message_id: str) -> ChatMessage | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    async def _abandon_in_flight(self) -> None:
        """Cancel any running send and detach it from the conversation."""
        self._epoch += 1
        task = self._send_task
        self._send_task = None
        if self._scheduler is not None:
            self._scheduler.stop()
            self._scheduler = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        self._debug("info", "Chat", "Cancelling in-flight reply")
        task.cancel()
        await asyncio.wait({task})

    # -- operations ---------------------------------------------------------

    async def initialize(
        self,
        conversation_key: str,
        persona: PersonaContext,
        resume: ResumeData | None = None,
    ) -> list[ChatMessage]:
        """Bind the controller to a conversation and rehydrate it.

        A conversation with no stored history is seeded with a welcome
        message, which is persisted. Calling again for the same key does not
        add a second welcome message.

        Returns:
            The conversation's messages
        """
        if conversation_key == self._key and self._messages:
            return self.messages

        await self._abandon_in_flight()
        self._key = conversation_key
        self._persona = persona
        self._resume = resume

        history = await self._store.load_history(conversation_key)
        if history:
            self._debug("info", "Chat", f"Loaded {len(history)} message(s) for '{conversation_key}'")
            self._replace_messages(history)
        else:
            welcome = ChatMessage.assistant(build_welcome_message(persona))
            self._replace_messages([welcome])
            await self._store.append_message(conversation_key, welcome)

        self._set_state(ConversationState.IDLE)
        return self.messages

    async def send(self, text: str) -> ChatMessage | None:
        """Send a user message and stream the persona's reply.

        Rejected (returns None, nothing created) when the text is blank, a
        reply is still streaming or revealing, or no conversation is bound.

        Returns:
            The assistant message once it is fully revealed and persisted,
            or None if the send was rejected
        """
        if not text or not text.strip():
            self._debug("debug", "Chat", "Rejected send: empty input")
            return None
        if self.busy:
            self._debug("debug", "Chat", f"Rejected send: busy ({self._state.value})")
            return None
        if self._key is None or self._persona is None:
            self._debug("warning", "Chat", "Rejected send: no conversation bound")
            return None

        # No await between the busy check and this line
        self._set_state(ConversationState.SENDING)
        self._send_task = asyncio.current_task()
        epoch = self._epoch
        key = self._key
        prior = list(self._messages)

        user_message = ChatMessage.user(text)
        self._append(user_message)
        placeholder = ChatMessage.assistant()
        self._append(placeholder)

        def _reveal(chunk: str) -> None:
            placeholder.content += chunk
            self._callback.on_message_updated(placeholder)

        async def _persist() -> None:
            await self._store.append_message(key, placeholder)

        scheduler = TypewriterScheduler(
            on_reveal=_reveal,
            on_finalize=_persist,
            tick_interval=self._tick_interval,
        )
        self._scheduler = scheduler

        try:
            await self._store.append_message(key, user_message)
            history = normalize_history(prior)
            scheduler.start()

            received = 0
            async with aclosing(
                self._client.stream(text, history, self._persona, self._resume)
            ) as stream:
                async for fragment in stream:
                    if received == 0:
                        self._set_state(ConversationState.STREAMING)
                    received += 1
                    scheduler.push(fragment)

            if not (scheduler.visible_text + scheduler.pending_text).strip():
                raise EmptyReplyError("The stream completed without any visible text")

            scheduler.complete()
            self._set_state(ConversationState.REVEALING)
            await scheduler.wait()
        except asyncio.CancelledError:
            scheduler.stop()
            self._debug("info", "Chat", "Reply abandoned; placeholder not persisted")
            raise
        except GenerationError as e:
            await self._fail(placeholder, scheduler, e.kind, e)
        except Exception as e:
            await self._fail(placeholder, scheduler, FailureKind.STREAM_INTERRUPTED, e)
        finally:
            if epoch == self._epoch:
                self._send_task = None
                self._scheduler = None
                self._set_state(ConversationState.IDLE)

        return placeholder

    async def _fail(
        self,
        placeholder: ChatMessage,
        scheduler: TypewriterScheduler,
        kind: FailureKind,
        error: Exception,
    ) -> None:
        """Substitute a kind-specific explanation into the placeholder and persist it."""
        self._debug("error", "Stream", f"{kind.value}: {error}")

        unrevealed = scheduler.stop()
        partial = scheduler.visible_text + unrevealed
        note = FAILURE_MESSAGES[kind]

        if kind is FailureKind.STREAM_INTERRUPTED and partial.strip():
            placeholder.content = partial + INTERRUPTION_SEPARATOR + note
        else:
            placeholder.content = note

        self._callback.on_message_updated(placeholder)
        self._callback.on_notice(FAILURE_NOTICES[kind], "error")
        await scheduler.finalize()

    async def set_feedback(self, message_id: str, value: Feedback | str) -> Feedback | None:
        """Toggle feedback on a message.

        Setting the value a message already has clears it; any other value
        replaces it. The result is mirrored to the store.

        Returns:
            The message's new feedback (None when cleared or the id is unknown)
        """
        value = Feedback(value)
        message = self._find(message_id)
        if message is None:
            self._debug("warning", "Chat", f"Feedback for unknown message {message_id}")
            return None

        new_feedback = None if message.feedback == value else value
        message.feedback = new_feedback
        self._callback.on_message_updated(message)
        await self._store.update_feedback(message_id, new_feedback)

        if new_feedback is not None:
            self._callback.on_notice("Feedback recorded.")
        return new_feedback

    async def reset(self) -> ChatMessage:
        """Irreversibly clear the conversation and reseed it.

        Cancels any in-flight reply, deletes the stored history and starts
        over with a fresh welcome message. Confirmation is the caller's job.

        Returns:
            The new welcome message

        Raises:
            RuntimeError: If no conversation is bound
        """
        if self._key is None or self._persona is None:
            raise RuntimeError("No conversation bound; call initialize() first")

        await self._abandon_in_flight()
        key = self._key

        await self._store.clear_history(key)
        welcome = ChatMessage.assistant(build_welcome_message(self._persona, after_reset=True))
        self._replace_messages([welcome])
        await self._store.append_message(key, welcome)

        self._set_state(ConversationState.IDLE)
        self._debug("info", "Chat", f"Conversation '{key}' reset")
        self._callback.on_notice("Conversation reset.")
        return welcome

    async def close(self) -> None:
        """Abandon any in-flight reply. Store and client are owned by the caller."""
        await self._abandon_in_flight()
        self._set_state(ConversationState.IDLE)
