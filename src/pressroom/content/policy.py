"""Pipeline policy: persisted settings exposed as immutable snapshots.

Settings are plain strings in the store's settings table.  Workers never
read them directly; they ask a ``PolicyProvider`` for the current
``PipelinePolicy`` at each decision point.  The provider re-reads storage
at most once per ``refresh_seconds``, so administrative changes take
effect on the next item without hammering storage.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from pressroom.content.models import DEFAULT_LANGUAGES, PipelinePolicy, Platform
from pressroom.content.store import ContentStore

logger = logging.getLogger(__name__)

PRE_MODERATION_ENABLED = "pre_moderation_enabled"
AUTO_PUBLISH_ENABLED = "auto_publish_enabled"
AUTO_PUBLISH_PLATFORMS = "auto_publish_platforms"
AUTO_PUBLISH_LANGUAGES = "auto_publish_languages"

POLICY_KEYS = (
    PRE_MODERATION_ENABLED,
    AUTO_PUBLISH_ENABLED,
    AUTO_PUBLISH_PLATFORMS,
    AUTO_PUBLISH_LANGUAGES,
)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    logger.warning("Unrecognised boolean setting %r, using default %s", raw, default)
    return default


def _split(raw: str) -> list[str]:
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


def _parse_platforms(raw: str | None, default: frozenset[Platform]) -> frozenset[Platform]:
    if raw is None:
        return default
    platforms: set[Platform] = set()
    for name in _split(raw):
        try:
            platforms.add(Platform(name))
        except ValueError:
            logger.warning("Ignoring unknown platform in policy: %s", name)
    return frozenset(platforms)


def policy_from_settings(settings: dict[str, str]) -> PipelinePolicy:
    """Build a policy snapshot; absent keys take the documented defaults."""
    defaults = PipelinePolicy()
    languages_raw = settings.get(AUTO_PUBLISH_LANGUAGES)
    return PipelinePolicy(
        pre_moderation_enabled=_parse_bool(
            settings.get(PRE_MODERATION_ENABLED), defaults.pre_moderation_enabled
        ),
        auto_publish_enabled=_parse_bool(
            settings.get(AUTO_PUBLISH_ENABLED), defaults.auto_publish_enabled
        ),
        auto_publish_platforms=_parse_platforms(
            settings.get(AUTO_PUBLISH_PLATFORMS), defaults.auto_publish_platforms
        ),
        auto_publish_languages=(
            frozenset(_split(languages_raw))
            if languages_raw is not None
            else frozenset(DEFAULT_LANGUAGES)
        ),
    )


def write_policy_setting(store: ContentStore, key: str, value: str) -> None:
    """Validate and persist one policy setting.

    Raises:
        ValueError: For unknown keys or unparseable values.
    """
    if key not in POLICY_KEYS:
        raise ValueError(f"Unknown policy key {key!r}; expected one of {', '.join(POLICY_KEYS)}")
    if key in (PRE_MODERATION_ENABLED, AUTO_PUBLISH_ENABLED):
        if value.strip().lower() not in _TRUE | _FALSE:
            raise ValueError(f"{key} expects a boolean, got {value!r}")
    if key == AUTO_PUBLISH_PLATFORMS:
        for name in _split(value):
            Platform(name)
    store.set_setting(key, value)
    logger.info("Policy %s set to %s", key, value)


class PolicyProvider:
    """Hands out fresh ``PipelinePolicy`` snapshots with a bounded refresh cadence."""

    def __init__(
        self,
        store: ContentStore,
        *,
        refresh_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._refresh_seconds = refresh_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._policy: PipelinePolicy | None = None
        self._loaded_at = 0.0

    def current(self) -> PipelinePolicy:
        with self._lock:
            now = self._clock()
            if self._policy is None or now - self._loaded_at >= self._refresh_seconds:
                self._policy = self._read()
                self._loaded_at = now
            return self._policy

    def invalidate(self) -> None:
        with self._lock:
            self._policy = None

    def _read(self) -> PipelinePolicy:
        try:
            settings = self._store.fresh_settings()
        except OSError:
            if self._policy is not None:
                logger.warning("Policy refresh failed, keeping previous snapshot", exc_info=True)
                return self._policy
            logger.warning("Policy read failed, using defaults", exc_info=True)
            return PipelinePolicy()
        return policy_from_settings(settings)
