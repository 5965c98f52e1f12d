"""Per-user conversation state for multi-step flows."""

import asyncio
import weakref
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Dict, Optional, Union


class AddEventStep(IntEnum):
    TITLE = 1
    DATE = 2
    DESCRIPTION = 3


class AddExpenseStep(IntEnum):
    ITEM = 1
    AMOUNT = 2
    CATEGORY = 3


class QueryExpensesStep(IntEnum):
    CHOICE = 1
    CUSTOM_RANGE = 2


@dataclass(frozen=True)
class AddEventState:
    action: ClassVar[str] = "add_event"
    step: AddEventStep = AddEventStep.TITLE
    title: Optional[str] = None
    date: Optional[str] = None


@dataclass(frozen=True)
class QueryEventsState:
    action: ClassVar[str] = "query_events"
    step: int = 1


@dataclass(frozen=True)
class AddExpenseState:
    action: ClassVar[str] = "add_expense"
    step: AddExpenseStep = AddExpenseStep.ITEM
    item: Optional[str] = None
    amount: Optional[float] = None


@dataclass(frozen=True)
class QueryExpensesState:
    action: ClassVar[str] = "query_expenses"
    step: QueryExpensesStep = QueryExpensesStep.CHOICE


@dataclass(frozen=True)
class SendEmailState:
    action: ClassVar[str] = "send_email"
    step: int = 1


ConversationState = Union[
    AddEventState,
    QueryEventsState,
    AddExpenseState,
    QueryExpensesState,
    SendEmailState,
]


class ConversationStateStore:
    """In-memory map of user id to the in-progress flow.

    States never expire; an abandoned flow stays until the user cancels or
    finishes it. ``lock(user_id)`` serialises one user's read-advance-write
    cycle; a lock lives only while some caller holds or awaits it.
    """

    def __init__(self):
        self._states: Dict[str, ConversationState] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, user_id: str) -> Optional[ConversationState]:
        return self._states.get(user_id)

    def set(self, user_id: str, state: ConversationState) -> None:
        self._states[user_id] = state

    def clear(self, user_id: str) -> None:
        self._states.pop(user_id, None)

    def lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._states

    def __len__(self) -> int:
        return len(self._states)
