"""Scoped metadata overrides for synthetic attachments.

The override is handed to the backend as the ``metadata`` argument of a
validation run instead of patching any global lookup, so it cannot leak
between trials, threads or processes. Once its scope closes the provider
answers every lookup with the backend's own resolution.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MockedMetadata:
    """Metadata provider returning fixed values for one attachment handle."""

    def __init__(self, attachment: Any, overrides: dict[str, Any]) -> None:
        self._attachment = attachment
        self._overrides = dict(overrides)
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def overrides(self) -> dict[str, Any]:
        return dict(self._overrides)

    def resolve(self, attachment: Any, key: str, fallback: Callable[[], Any]) -> Any:
        if self._active and attachment is self._attachment and key in self._overrides:
            return self._overrides[key]
        return fallback()

    def release(self) -> None:
        self._active = False


@contextmanager
def mocked_metadata(
    attachment: Any,
    *,
    width: int | None = None,
    height: int | None = None,
    byte_size: int | None = None,
) -> Iterator[MockedMetadata]:
    """Yield a provider that fakes the given metadata for ``attachment``.

    Axes left as None are not overridden.
    """
    overrides = {
        key: value
        for key, value in (("width", width), ("height", height), ("byte_size", byte_size))
        if value is not None
    }
    provider = MockedMetadata(attachment, overrides)
    logger.debug("Mocking metadata %s", overrides)
    try:
        yield provider
    finally:
        provider.release()


def with_mocked_metadata(
    attachment: Any,
    width: int | None,
    height: int | None,
    fn: Callable[[MockedMetadata], T],
) -> T:
    """Run ``fn`` with a width/height override active and return its result."""
    with mocked_metadata(attachment, width=width, height=height) as provider:
        return fn(provider)
