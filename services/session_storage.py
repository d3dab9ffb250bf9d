"""Session-scoped key/value text storage."""

from typing import MutableMapping, Optional, Protocol

from services.errors import StorageError


class SessionStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemorySessionStorage:
    """Plain dict storage, used by tests and scripts."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class StreamlitSessionStorage:
    """
    Storage inside the Streamlit session state.

    Values live in a single dict under ``namespace`` so they do not collide
    with widget keys.
    """

    def __init__(self, session_state: MutableMapping, namespace: str = "_poll_storage"):
        self.session_state = session_state
        self.namespace = namespace

    def _bucket(self) -> dict[str, str]:
        try:
            if self.namespace not in self.session_state:
                self.session_state[self.namespace] = {}
            return self.session_state[self.namespace]
        except Exception as e:
            raise StorageError(f"Session state unavailable: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self._bucket().get(key)

    def set(self, key: str, value: str) -> None:
        self._bucket()[key] = value

    def remove(self, key: str) -> None:
        self._bucket().pop(key, None)
