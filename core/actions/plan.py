"""Double-ended queue of pending actions owned by a controller."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Iterator, List, Optional

from core.actions.action import Action, ActionType


class ActionPlan:
    """Ordered actions; the executor always consumes the front."""

    def __init__(self, actions: Iterable[Action] = ()) -> None:
        self._queue: Deque[Action] = deque(actions)

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[Action]:
        return iter(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def __repr__(self) -> str:
        return f"ActionPlan({[a.kind.name for a in self._queue]})"

    def push(self, action: Action) -> None:
        self._queue.append(action)

    def extend(self, actions: Iterable[Action]) -> None:
        self._queue.extend(actions)

    def push_front(self, action: Action) -> None:
        self._queue.appendleft(action)

    def extend_front(self, actions: Iterable[Action]) -> None:
        """Insert ``actions`` at the front, keeping their relative order."""

        self._queue.extendleft(reversed(list(actions)))

    def pop_front(self) -> Action:
        if not self._queue:
            raise IndexError("pop from an empty plan")
        return self._queue.popleft()

    def peek(self) -> Optional[Action]:
        return self._queue[0] if self._queue else None

    def find(self, kind: ActionType) -> Optional[Action]:
        """First queued action of ``kind``, or ``None``."""

        for action in self._queue:
            if action.kind == kind:
                return action
        return None

    def remove(self, action: Action) -> bool:
        """Remove the first occurrence of ``action``; ``False`` when absent."""

        for index, queued in enumerate(self._queue):
            if queued is action:
                del self._queue[index]
                return True
        return False

    def replace(self, action: Action, replacements: Iterable[Action]) -> bool:
        """Swap ``action`` for ``replacements`` in place; ``False`` when absent."""

        for index, queued in enumerate(self._queue):
            if queued is action:
                items: List[Action] = list(self._queue)
                items[index : index + 1] = list(replacements)
                self._queue = deque(items)
                return True
        return False

    def clear(self) -> None:
        self._queue.clear()

    def reset(self, actions: Iterable[Action]) -> None:
        """Discard every queued action and enqueue ``actions``."""

        self._queue = deque(actions)

    def kinds(self) -> List[ActionType]:
        return [action.kind for action in self._queue]


__all__ = ["ActionPlan"]
