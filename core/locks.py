import threading
from contextlib import ExitStack, contextmanager


class UserLockRegistry:
    """In-process locks keyed by user id.

    ``hold(a, b)`` takes the locks of both users in sorted id order, so two
    transitions sharing a user queue behind each other while transitions on
    users with nothing in common never wait. Entries are dropped once no
    thread holds or waits on them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def _checkout(self, user_id: str):
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = [threading.Lock(), 0]
            entry[1] += 1
            return entry

    def _release(self, user_id: str, entry) -> None:
        with self._guard:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[user_id]

    @contextmanager
    def _hold_one(self, user_id: str):
        entry = self._checkout(user_id)
        try:
            with entry[0]:
                yield
        finally:
            self._release(user_id, entry)

    @contextmanager
    def hold(self, *user_ids: str):
        with ExitStack() as stack:
            for user_id in sorted(set(user_ids)):
                stack.enter_context(self._hold_one(user_id))
            yield

    def __len__(self):
        with self._guard:
            return len(self._locks)
