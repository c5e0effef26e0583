#!/usr/bin/env python3
"""Records collected for each function-like definition and their per-file aggregate."""

import threading

from pydantic import BaseModel, Field, PrivateAttr, model_validator


class Record(BaseModel):
    """Link-time name and line range of a single definition."""

    name: str = ""  # empty when the name could not be resolved
    start: int = Field(ge=1)
    end: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_range(self) -> "Record":
        if self.start > self.end:
            raise ValueError(f"start line {self.start} is after end line {self.end}")
        return self


class FileRecordSet(BaseModel):
    """Records keyed by file path, in the order they were added."""

    files: dict[str, list[Record]] = Field(default_factory=dict)
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def add(self, file_path: str, record: Record) -> None:
        with self._lock:
            self.files.setdefault(file_path, []).append(record)

    def merge(self, other: "FileRecordSet") -> None:
        """Append every record of `other` after the records already held."""
        with self._lock:
            for file_path, records in other.files.items():
                self.files.setdefault(file_path, []).extend(records)

    def records_for(self, file_path: str) -> list[Record]:
        return list(self.files.get(file_path, []))

    def __len__(self) -> int:
        return sum(len(records) for records in self.files.values())

    def __contains__(self, file_path: object) -> bool:
        return file_path in self.files

    def to_document(self) -> dict[str, list[dict]]:
        return {
            file_path: [record.model_dump() for record in records]
            for file_path, records in self.files.items()
        }
