"""
RESPONSIBILITIES
- Provide the typed registry entry shared by the in-memory registry and the ledger.
PROCESS OVERVIEW
1. The registry creates a RegistryEntry for every registered fragment.
2. to_dict() prepares the ledger row; bodies stay in the fragment files.
3. from_row() rebuilds an entry from a ledger row plus the re-read body.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, MutableMapping


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def body_digest(body: str) -> str:
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def _optional(value: object) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None


@dataclass(slots=True, frozen=True)
class RegistryEntry:
    directory: str
    name: str
    flavor: str
    body: str
    tag: str | None = None
    source: str | None = None
    path: str | None = None
    registered_at: datetime = field(default_factory=_utcnow)

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.flavor)

    @property
    def sha256(self) -> str:
        return body_digest(self.body)

    def to_dict(self) -> MutableMapping[str, object]:
        return {
            "name": self.name,
            "flavor": self.flavor,
            "tag": self.tag or "",
            "source": self.source or "",
            "path": self.path or "",
            "sha256": self.sha256,
            "registered_at": self.registered_at.isoformat(),
        }

    @classmethod
    def from_row(cls, directory: str, row: Mapping[str, object], body: str) -> "RegistryEntry":
        registered = _optional(row.get("registered_at"))
        return cls(
            directory=directory,
            name=str(row["name"]),
            flavor=str(row["flavor"]),
            body=body,
            tag=_optional(row.get("tag")),
            source=_optional(row.get("source")),
            path=_optional(row.get("path")),
            registered_at=datetime.fromisoformat(registered) if registered else _utcnow(),
        )
