"""Data models for the store module.

Field names on the Python side are snake_case; ``to_dict()`` / ``from_dict()``
map them to the camelCase names of the stored records and of the export
format.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = ["Setting", "CodeRecord", "HistoryEntry", "Snippet", "document_id", "count_lines"]


def document_id(lang: str, filename: str) -> str:
    """Primary key of the code document for (lang, filename)."""
    return f"{lang}:{filename}"


def count_lines(code: str) -> int:
    """Number of newline-separated lines; 0 for empty code."""
    return len(code.split("\n")) if code else 0


@dataclass
class Setting:
    key:   str
    value: Any = None

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, d: dict) -> "Setting":
        return cls(key=d["key"], value=d.get("value"))


@dataclass
class CodeRecord:
    """
    Current text of one code document.

    Fields
    ──────
    lang        — language identifier, e.g. "python"
    filename    — document name within the language, default "main"
    code        — full document text
    version     — 1 on first save, +1 on every save that changes the text
    updated_at  — epoch milliseconds of the save
    author      — free-form; "restore" for records written by a restore
    description — free-form save description
    """
    lang:        str
    filename:    str
    code:        str
    version:     int = 1
    updated_at:  int = 0
    author:      str = ""
    description: str = ""

    @property
    def id(self) -> str:
        return document_id(self.lang, self.filename)

    def to_dict(self) -> dict:
        return {
            "id":          self.id,
            "lang":        self.lang,
            "filename":    self.filename,
            "code":        self.code,
            "updatedAt":   self.updated_at,
            "version":     self.version,
            "author":      self.author,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CodeRecord":
        return cls(
            lang=d.get("lang") or "",
            filename=d.get("filename") or "",
            code=d.get("code") or "",
            version=d.get("version") or 1,
            updated_at=d.get("updatedAt") or 0,
            author=d.get("author") or "",
            description=d.get("description") or "",
        )

    def __str__(self) -> str:
        return f"CodeRecord(id={self.id!r}, v{self.version}, {len(self.code)} chars)"


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable snapshot of one save: the version and code as written."""
    lang:      str
    filename:  str
    version:   int
    code:      str
    message:   str
    timestamp: int
    size:      int
    lines:     int
    id:        Optional[int] = None   # assigned by the store

    def to_dict(self) -> dict:
        d = {
            "lang":      self.lang,
            "filename":  self.filename,
            "version":   self.version,
            "code":      self.code,
            "message":   self.message,
            "timestamp": self.timestamp,
            "size":      self.size,
            "lines":     self.lines,
        }
        if self.id is not None:
            d = {"id": self.id, **d}
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "HistoryEntry":
        code = d.get("code") or ""
        return cls(
            id=d.get("id"),
            lang=d.get("lang") or "",
            filename=d.get("filename") or "",
            version=d.get("version") or 0,
            code=code,
            message=d.get("message") or "",
            timestamp=d.get("timestamp") or 0,
            size=d.get("size", len(code)),
            lines=d.get("lines", count_lines(code)),
        )


@dataclass
class Snippet:
    """Named, tagged reusable code fragment."""
    lang:        str
    name:        str
    code:        str
    tags:        list[str] = field(default_factory=list)
    created_at:  int = 0
    usage_count: int = 0
    id:          Optional[int] = None

    def to_dict(self) -> dict:
        d = {
            "lang":       self.lang,
            "name":       self.name,
            "code":       self.code,
            "tags":       list(self.tags),
            "createdAt":  self.created_at,
            "usageCount": self.usage_count,
        }
        if self.id is not None:
            d = {"id": self.id, **d}
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Snippet":
        return cls(
            id=d.get("id"),
            lang=d.get("lang") or "",
            name=d.get("name") or "",
            code=d.get("code") or "",
            tags=list(d.get("tags") or []),
            created_at=d.get("createdAt") or 0,
            usage_count=d.get("usageCount") or 0,
        )

    def __str__(self) -> str:
        return f"Snippet(id={self.id}, {self.lang}/{self.name!r}, used={self.usage_count})"
