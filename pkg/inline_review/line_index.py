"""Valid comment anchors for one file and validation of AI line references."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .candidates import CommentCandidate
from .diff_parser import ADDED, CONTEXT, DiffLine

REJECT_NOT_IN_DIFF = "line is not an added or context line of the diff"


@dataclass(frozen=True)
class LineAddressIndex:
    """Map: new-file line number -> kind (added or context)."""
    kinds: dict[int, str] = field(default_factory=dict)

    @classmethod
    def build(cls, lines: Iterable[DiffLine]) -> "LineAddressIndex":
        kinds: dict[int, str] = {}
        for line in lines:
            if line.kind in (ADDED, CONTEXT) and line.new_line_number is not None:
                kinds[line.new_line_number] = line.kind
        return cls(kinds=kinds)

    def validate(self, line_number: int) -> bool:
        """Exact membership. No rounding or nearest-line fallback."""
        if isinstance(line_number, bool) or not isinstance(line_number, int):
            return False
        return line_number in self.kinds

    def kind(self, line_number: int) -> str | None:
        return self.kinds.get(line_number)

    def line_numbers(self, kind: str | None = None) -> list[int]:
        return sorted(n for n, k in self.kinds.items() if kind is None or k == kind)

    def __contains__(self, line_number: object) -> bool:
        return isinstance(line_number, int) and self.validate(line_number)

    def __len__(self) -> int:
        return len(self.kinds)


@dataclass(frozen=True)
class ValidationRejection:
    """A candidate filtered out because its line cannot carry a comment."""
    file_path: str
    line_number: int
    reason: str = REJECT_NOT_IN_DIFF


@dataclass(frozen=True)
class ValidationResult:
    accepted: tuple[CommentCandidate, ...] = ()
    rejected: tuple[ValidationRejection, ...] = ()


def validate_candidates(
    file_path: str,
    candidates: Iterable[CommentCandidate],
    index: LineAddressIndex,
) -> ValidationResult:
    """Split candidates into accepted and rejected, preserving order."""
    accepted: list[CommentCandidate] = []
    rejected: list[ValidationRejection] = []
    for candidate in candidates:
        if index.validate(candidate.line_number):
            accepted.append(candidate)
        else:
            rejected.append(ValidationRejection(file_path, candidate.line_number))
    return ValidationResult(accepted=tuple(accepted), rejected=tuple(rejected))
