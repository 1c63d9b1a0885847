"""
Client-side conversation state.

``reduce(state, action)`` is a pure transition function over an immutable
``ChatState``; ``ChatStore`` is the container that owns the current state
and applies actions in dispatch order. Nothing here is a module global:
create a store and hand it to whatever needs it.

Messages can reach the client twice (the HTTP response of the submitting
session and the ``message-received`` broadcast), so appends are keyed by
message id and idempotent.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

Summary = Dict[str, Any]
ConversationData = Dict[str, Any]


@dataclass(frozen=True)
class ChatState:
    conversations: Tuple[Summary, ...] = ()
    current_conversation: Optional[ConversationData] = None
    is_loading: bool = False
    is_typing: bool = False
    error: Optional[str] = None


# --- Actions ---

@dataclass(frozen=True)
class SetLoading:
    value: bool


@dataclass(frozen=True)
class SetTyping:
    value: bool


@dataclass(frozen=True)
class SetConversations:
    summaries: Tuple[Summary, ...]


@dataclass(frozen=True)
class AddConversation:
    summary: Summary


@dataclass(frozen=True)
class UpsertConversation:
    summary: Summary


@dataclass(frozen=True)
class RemoveConversation:
    conversation_id: str


@dataclass(frozen=True)
class SetCurrentConversation:
    conversation: Optional[ConversationData]


@dataclass(frozen=True)
class MessageReceived:
    conversation_id: str
    message: Dict[str, Any]


@dataclass(frozen=True)
class SubmitStarted:
    conversation_id: str


@dataclass(frozen=True)
class SubmitSucceeded:
    conversation: ConversationData


@dataclass(frozen=True)
class SubmitFailed:
    error: str


@dataclass(frozen=True)
class SetError:
    error: str


@dataclass(frozen=True)
class ClearError:
    pass


def summary_of(conversation: ConversationData) -> Summary:
    """List-view projection of a full conversation."""
    messages = conversation.get("messages") or []
    return {
        "id": conversation["id"],
        "title": conversation.get("title"),
        "messageCount": len(messages),
        "lastMessage": messages[-1] if messages else None,
        "createdAt": conversation.get("createdAt"),
        "updatedAt": conversation.get("updatedAt"),
    }


def _by_recency(summaries) -> Tuple[Summary, ...]:
    # ISO-8601 timestamps from the server sort correctly as strings
    return tuple(
        sorted(summaries, key=lambda s: s.get("updatedAt") or "", reverse=True)
    )


def _upsert(summaries: Tuple[Summary, ...], summary: Summary) -> Tuple[Summary, ...]:
    rest = [s for s in summaries if s["id"] != summary["id"]]
    return _by_recency([summary] + rest)


def _append_once(conversation: ConversationData, message: Dict[str, Any]) -> ConversationData:
    messages = conversation.get("messages") or []
    if any(m.get("id") == message.get("id") for m in messages):
        return conversation
    updated = dict(conversation)
    updated["messages"] = list(messages) + [message]
    return updated


def reduce(state: ChatState, action) -> ChatState:
    """Apply one action and return the next state."""
    current = state.current_conversation

    if isinstance(action, SetLoading):
        return replace(state, is_loading=action.value)

    if isinstance(action, SetTyping):
        return replace(state, is_typing=action.value)

    if isinstance(action, SetConversations):
        return replace(state, conversations=tuple(action.summaries))

    if isinstance(action, AddConversation):
        rest = tuple(s for s in state.conversations if s["id"] != action.summary["id"])
        return replace(state, conversations=(action.summary,) + rest)

    if isinstance(action, UpsertConversation):
        return replace(state, conversations=_upsert(state.conversations, action.summary))

    if isinstance(action, RemoveConversation):
        return replace(
            state,
            conversations=tuple(
                s for s in state.conversations if s["id"] != action.conversation_id
            ),
            current_conversation=(
                None
                if current is not None and current["id"] == action.conversation_id
                else current
            ),
        )

    if isinstance(action, SetCurrentConversation):
        return replace(state, current_conversation=action.conversation)

    if isinstance(action, MessageReceived):
        if current is None or current["id"] != action.conversation_id:
            return state
        updated = _append_once(current, action.message)
        if updated is current:
            return state
        return replace(state, current_conversation=updated)

    if isinstance(action, SubmitStarted):
        return replace(state, is_typing=True, error=None)

    if isinstance(action, SubmitSucceeded):
        conversation = action.conversation
        if current is not None and current["id"] == conversation["id"]:
            current = conversation
        return replace(
            state,
            current_conversation=current,
            conversations=_upsert(state.conversations, summary_of(conversation)),
            is_typing=False,
        )

    if isinstance(action, (SubmitFailed, SetError)):
        return replace(state, error=action.error, is_loading=False, is_typing=False)

    if isinstance(action, ClearError):
        return replace(state, error=None)

    raise TypeError(f"Unknown action: {action!r}")


Listener = Callable[[ChatState], None]


@dataclass
class ChatStore:
    """Holds the current ``ChatState`` and applies actions in order."""

    state: ChatState = field(default_factory=ChatState)
    _listeners: List[Listener] = field(default_factory=list, repr=False)

    def dispatch(self, action) -> ChatState:
        new_state = reduce(self.state, action)
        if new_state is not self.state:
            self.state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self.state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function removing it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
