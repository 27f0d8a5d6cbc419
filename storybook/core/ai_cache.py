"""
In-process memoization of vendor responses.

Entries expire on read once their TTL has passed; there is no other
eviction. The cache lives inside one server process, so separate workers
each keep their own copy.
"""

import hashlib
import json
import logging
import re
import threading
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DAY = 60 * 60 * 24

# Key prefix and TTL (seconds) for each kind of cached response
CACHE_CONFIG: dict[str, dict] = {
    "character": {"prefix": "char_analysis", "ttl": 30 * DAY},
    "image": {"prefix": "img_prompt", "ttl": 7 * DAY},
    "story": {"prefix": "story_content", "ttl": 14 * DAY},
    "template": {"prefix": "template_suggest", "ttl": 3 * DAY},
}

CACHE_KINDS = (*CACHE_CONFIG.keys(), "all")


class InMemoryCache:
    """Key/value store with per-entry expiry checked on read."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def flush_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob-style pattern. Returns count removed."""
        regex = re.compile(pattern.replace("*", ".*"))
        with self._lock:
            doomed = [key for key in self._entries if regex.search(key)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)


def generate_key(prefix: str, inputs: dict) -> str:
    """Stable key: prefix plus the first 16 hex chars of sha256(sorted JSON)."""
    payload = json.dumps(inputs, sort_keys=True, default=str)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
    return f"{prefix}:{digest}"


class AICache:
    """Typed get/set helpers over an InMemoryCache."""

    def __init__(self, store: Optional[InMemoryCache] = None):
        self.store = store or InMemoryCache()

    def _key(self, kind: str, inputs: dict) -> str:
        return generate_key(CACHE_CONFIG[kind]["prefix"], inputs)

    def get(self, kind: str, inputs: dict) -> Optional[Any]:
        entry = self.store.get(self._key(kind, inputs))
        if entry is None:
            return None
        return entry["value"]

    def set(self, kind: str, inputs: dict, value: Any) -> None:
        entry = {
            "value": value,
            "cached_at": datetime.now(timezone.utc).isoformat(),
        }
        self.store.set(self._key(kind, inputs), entry, CACHE_CONFIG[kind]["ttl"])

    async def get_or_compute(
        self,
        kind: str,
        inputs: dict,
        compute: Callable[[], Awaitable[Any]],
    ) -> tuple[Any, bool]:
        """Return (value, was_cached), awaiting `compute` on a miss.

        Exceptions from `compute` propagate and nothing is stored.
        """
        cached = self.get(kind, inputs)
        if cached is not None:
            logger.debug("Cache hit", extra={"event": f"cache_hit:{kind}"})
            return cached, True

        value = await compute()
        if value is not None:
            self.set(kind, inputs, value)
        return value, False

    # Named helpers for each cached response type

    def get_image_prompt(self, character_ref: str, scene: str, art_style: str, version: str) -> Optional[dict]:
        return self.get("image", _image_inputs(character_ref, scene, art_style, version))

    def set_image_prompt(self, character_ref: str, scene: str, art_style: str, version: str, result: dict) -> None:
        self.set("image", _image_inputs(character_ref, scene, art_style, version), result)

    def get_story_content(self, inputs: dict) -> Optional[dict]:
        return self.get("story", inputs)

    def set_story_content(self, inputs: dict, content: dict) -> None:
        self.set("story", inputs, content)

    def get_template_suggestions(self, child_profile: dict, preferences: dict) -> Optional[list]:
        return self.get("template", {"childProfile": child_profile, "preferences": preferences})

    def set_template_suggestions(self, child_profile: dict, preferences: dict, suggestions: list) -> None:
        self.set("template", {"childProfile": child_profile, "preferences": preferences}, suggestions)

    def clear(self, kind: str = "all") -> int:
        """Flush one kind of entry (or everything). Unknown kinds flush all."""
        if kind in CACHE_CONFIG:
            pattern = f"{CACHE_CONFIG[kind]['prefix']}:*"
        else:
            pattern = "*"
        removed = self.store.flush_pattern(pattern)
        logger.info(f"Cleared {removed} cache entries ({kind})")
        return removed

    def stats(self) -> dict:
        return {
            "provider": "In-Memory",
            "entries": self.store.size(),
            "patterns": {
                kind: {"prefix": cfg["prefix"], "ttl": cfg["ttl"]}
                for kind, cfg in CACHE_CONFIG.items()
            },
        }


def _image_inputs(character_ref: str, scene: str, art_style: str, version: str) -> dict:
    return {
        "characterRef": character_ref,
        "sceneDescription": scene,
        "artStyle": art_style,
        "promptVersion": version,
    }


# Global cache instance
ai_cache = AICache()
