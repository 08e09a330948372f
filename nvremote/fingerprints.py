import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Union

from . import crypto
from .errors import CacheDecodeError, CacheIoError

"""
fingerprints.py - persistent host -> pinned certificate cache.

File format (UTF-8 JSON):
    {"fingerprints": {"<host>": "<hex of DER certificate>"}}

Rules:
- Loading fails OPEN: missing/unreadable/garbled file = empty cache, so the
  very first run just works (the host will be rejected until pinned).
- Saving is atomic: write a temp file next to the target, then rename it
  over the old one. A crash mid-write leaves the previous cache intact.
- Entries change only through add()/remove(); nothing in the connect path
  ever pins a host by itself.
"""

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

TOP_LEVEL_KEY = "fingerprints"


class FingerprintStore:
    """In-memory view of the pin cache; one per connection attempt."""

    def __init__(self, fingerprints: Optional[Dict[str, str]] = None) -> None:
        # host -> hex string, kept exactly as stored on disk
        self._fingerprints: Dict[str, str] = dict(fingerprints or {})

    # -----------------
    # Persistence
    # -----------------

    @classmethod
    def load(cls, path: PathLike) -> "FingerprintStore":
        """Read the cache at `path`; any failure yields an empty store."""
        p = Path(path)
        try:
            raw = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.info("No pin cache at %s yet; starting empty", p)
            return cls()
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Could not read pin cache %s (%s); starting empty", p, exc)
            return cls()

        try:
            doc = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            log.warning("Pin cache %s is not valid JSON (%s); starting empty", p, exc)
            return cls()

        entries = doc.get(TOP_LEVEL_KEY) if isinstance(doc, dict) else None
        if not isinstance(entries, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in entries.items()
        ):
            log.warning("Pin cache %s has an unexpected layout; starting empty", p)
            return cls()

        return cls(entries)

    def save(self, path: PathLike) -> None:
        """
        Write the whole mapping to `path`, replacing what was there.

        Raises:
            CacheIoError: the file couldn't be written or the data couldn't
                be serialized. The previous file is left untouched.
        """
        p = Path(path)
        try:
            payload = json.dumps({TOP_LEVEL_KEY: self._fingerprints}, indent=2) + "\n"
        except (TypeError, ValueError) as exc:
            raise CacheIoError(str(p), exc) from exc

        tmp_name = None
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, p)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CacheIoError(str(p), exc) from exc

        log.debug("Saved %d pin(s) to %s", len(self._fingerprints), p)

    # -----------------
    # Lookups / updates
    # -----------------

    def contains(self, host: str) -> bool:
        return host in self._fingerprints

    __contains__ = contains

    def __len__(self) -> int:
        return len(self._fingerprints)

    def hosts(self) -> List[str]:
        return sorted(self._fingerprints)

    def add(self, host: str, certificate: bytes) -> None:
        """Pin `host` to `certificate` (DER). Re-adding just overwrites."""
        self._fingerprints[host] = crypto.cert_to_hex(certificate)

    def remove(self, host: str) -> bool:
        """Forget a pin. Returns True if there was one."""
        return self._fingerprints.pop(host, None) is not None

    def get(self, host: str) -> Optional[bytes]:
        """
        Pinned certificate bytes for `host`, or None if not pinned.

        Raises:
            CacheDecodeError: the stored value isn't valid hex.
        """
        stored = self._fingerprints.get(host)
        if stored is None:
            return None
        try:
            return crypto.cert_from_hex(stored)
        except ValueError as exc:
            raise CacheDecodeError(host) from exc

    def as_trust_anchors(self, host: Optional[str] = None) -> FrozenSet[bytes]:
        """
        Certificates acceptable as trust roots.

        With `host`, only that host's pin (possibly empty). Without it,
        every pin in the cache.
        """
        if host is not None:
            pinned = self.get(host)
            return frozenset() if pinned is None else frozenset([pinned])
        return frozenset(self.get(h) for h in self._fingerprints)
