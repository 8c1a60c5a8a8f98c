from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, Iterator, List, Optional


@dataclass(frozen=True)
class LedgerEntry:
    question_id: str
    answer_id: str
    score: int = 0


class AnswerLedger:
    """Answers keyed by question id, in first-answered order.

    Re-answering a question replaces its entry in place.
    """

    def __init__(self, entries: Iterable[LedgerEntry] = ()):
        self._entries: Dict[str, LedgerEntry] = {}
        for entry in entries:
            self.record(entry)

    def record(self, entry: LedgerEntry) -> None:
        self._entries[entry.question_id] = entry

    def get(self, question_id: str) -> Optional[LedgerEntry]:
        return self._entries.get(question_id)

    def answer_for(self, question_id: str) -> Optional[str]:
        entry = self._entries.get(question_id)
        return entry.answer_id if entry else None

    def total_score(self) -> int:
        return sum(entry.score for entry in self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[LedgerEntry]:
        return list(self._entries.values())

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._entries

    def to_list(self) -> List[dict]:
        return [asdict(entry) for entry in self._entries.values()]

    @classmethod
    def from_list(cls, items: Iterable[dict]) -> "AnswerLedger":
        return cls(
            LedgerEntry(str(item["question_id"]), str(item["answer_id"]), int(item.get("score", 0)))
            for item in items
        )
