"""Sequence diff engine for ordered track lists.

Computes an edit script of removals, additions and moves that turns one ordered
sequence of track ids into another.

Algorithm
---------
1. Occurrences are tagged ``(id, k)`` so that the k-th occurrence of an id in
   the base pairs with the k-th occurrence in the target.
2. Paired occurrences are candidates for staying put. The kept set is the
   longest subsequence of them whose target positions increase (an LCS of the
   two sequences). Among equally long subsequences the one with the
   lexicographically smallest target positions wins, so the result is
   deterministic.
3. Unpaired base occurrences become ``Remove``, unpaired target occurrences
   become ``Add`` and paired-but-not-kept occurrences become ``Move``.

Ops are emitted removals first, then additions, then moves. Each index is valid
against the intermediate list at the moment the op is applied: an item is always
placed right after its nearest already-settled predecessor in the target. When
nothing is out of order this is exactly the item's final index in the target.
"""

import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from ...models import ChangeKind, Snapshot
from ..errors import TrackNotFound

logger = logging.getLogger(__name__)

Token = Tuple[str, int]
SequenceLike = Union[Snapshot, Sequence[str]]


@dataclass(frozen=True)
class EditOp:
    """A single edit against an ordered track list.

    Attributes:
        kind: Type of edit
        track_id: Track the edit applies to
        index: Insert position for add, target position for move
        hint: Position of the affected occurrence for remove and move. Only used
            to pick the right occurrence when an id is duplicated.
    """

    kind: ChangeKind
    track_id: str
    index: Optional[int] = None
    hint: Optional[int] = field(default=None, compare=False)

    @classmethod
    def add(cls, track_id: str, index: Optional[int]) -> "EditOp":
        """Create an add op."""
        return cls(ChangeKind.ADD, track_id, index)

    @classmethod
    def remove(cls, track_id: str, hint: Optional[int] = None) -> "EditOp":
        """Create a remove op."""
        return cls(ChangeKind.REMOVE, track_id, None, hint)

    @classmethod
    def move(cls, track_id: str, index: int, hint: Optional[int] = None) -> "EditOp":
        """Create a move op."""
        return cls(ChangeKind.MOVE, track_id, index, hint)

    def __str__(self) -> str:
        """Human-readable representation of the op."""
        if self.kind == ChangeKind.REMOVE:
            return f"Remove({self.track_id})"
        if self.kind == ChangeKind.ADD:
            return f"Add({self.track_id}, {self.index})"
        return f"Move({self.track_id}, {self.index})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert op to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "track_id": self.track_id,
            "index": self.index,
            "hint": self.hint,
        }


@dataclass
class EditScript:
    """Ordered list of edits: removals, then additions, then moves."""

    operations: List[EditOp] = field(default_factory=list)

    def __iter__(self) -> Iterator[EditOp]:
        """Iterate over ops in apply order."""
        return iter(self.operations)

    def __len__(self) -> int:
        """Get number of ops."""
        return len(self.operations)

    @property
    def removals(self) -> List[EditOp]:
        """Get remove ops."""
        return [op for op in self.operations if op.kind == ChangeKind.REMOVE]

    @property
    def additions(self) -> List[EditOp]:
        """Get add ops."""
        return [op for op in self.operations if op.kind == ChangeKind.ADD]

    @property
    def moves(self) -> List[EditOp]:
        """Get move ops."""
        return [op for op in self.operations if op.kind == ChangeKind.MOVE]

    @property
    def is_empty(self) -> bool:
        """Check if the script has no ops."""
        return not self.operations

    def summary(self) -> str:
        """Get '+added -removed ~moved' counts."""
        return (
            f"+{len(self.additions)} -{len(self.removals)} ~{len(self.moves)}"
        )

    def apply(self, sequence: SequenceLike) -> List[str]:
        """Apply the script to a sequence and return the result."""
        return apply_script(sequence, self.operations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert script to dictionary for serialization."""
        return {
            "operations": [op.to_dict() for op in self.operations],
            "added": len(self.additions),
            "removed": len(self.removals),
            "moved": len(self.moves),
        }


def _ids(sequence: SequenceLike) -> List[str]:
    if isinstance(sequence, Snapshot):
        return list(sequence.track_ids)
    return list(sequence)


def _tokenize(ids: Sequence[str]) -> List[Token]:
    """Tag each id with its occurrence number."""
    seen: Dict[str, int] = {}
    tokens = []
    for track_id in ids:
        k = seen.get(track_id, 0)
        seen[track_id] = k + 1
        tokens.append((track_id, k))
    return tokens


def _select_kept(positions: Sequence[int]) -> List[int]:
    """Pick the longest increasing run of target positions.

    Args:
        positions: Target positions of paired items, in base order

    Returns:
        Indices into ``positions`` of the kept items. Among all longest
        increasing subsequences, the one with the smallest target positions
        (compared lexicographically) is returned.
    """
    n = len(positions)
    if n == 0:
        return []

    # run[i] = length of the longest increasing subsequence starting at i.
    # Scanning right to left, an increasing run in positions is an increasing
    # run in the negated values, so plain patience sorting applies.
    run = [0] * n
    tails: List[int] = []
    for i in range(n - 1, -1, -1):
        key = -positions[i]
        k = bisect_left(tails, key)
        if k == len(tails):
            tails.append(key)
        else:
            tails[k] = key
        run[i] = k + 1

    kept: List[int] = []
    need = len(tails)
    last_position = -1
    start = 0
    while need:
        choice = -1
        for i in range(start, n):
            if run[i] != need or positions[i] <= last_position:
                continue
            if choice == -1 or positions[i] < positions[choice]:
                choice = i
        kept.append(choice)
        last_position = positions[choice]
        start = choice + 1
        need -= 1
    return kept


def _insertion_point(
    working: List[Token], target: List[Token], target_index: int, settled: Set[Token]
) -> int:
    """Index right after the nearest settled predecessor in the target."""
    for j in range(target_index - 1, -1, -1):
        if target[j] in settled:
            return working.index(target[j]) + 1
    return 0


def compute_diff(base: SequenceLike, target: SequenceLike) -> EditScript:
    """Compute the edit script that turns ``base`` into ``target``.

    Args:
        base: Starting sequence (list of ids or Snapshot)
        target: Desired sequence (list of ids or Snapshot)

    Returns:
        EditScript whose application to ``base`` yields exactly ``target``
    """
    base_tokens = _tokenize(_ids(base))
    target_tokens = _tokenize(_ids(target))
    target_position = {token: i for i, token in enumerate(target_tokens)}
    in_base = set(base_tokens)

    paired = [token for token in base_tokens if token in target_position]
    kept = _select_kept([target_position[token] for token in paired])
    settled: Set[Token] = {paired[i] for i in kept}

    operations: List[EditOp] = []
    working = list(base_tokens)

    for token in base_tokens:
        if token in target_position:
            continue
        position = working.index(token)
        working.pop(position)
        operations.append(EditOp.remove(token[0], position))

    for i, token in enumerate(target_tokens):
        if token in in_base:
            continue
        position = _insertion_point(working, target_tokens, i, settled)
        working.insert(position, token)
        settled.add(token)
        operations.append(EditOp.add(token[0], position))

    for i, token in enumerate(target_tokens):
        if token in settled:
            continue
        origin = working.index(token)
        working.pop(origin)
        position = _insertion_point(working, target_tokens, i, settled)
        working.insert(position, token)
        settled.add(token)
        operations.append(EditOp.move(token[0], position, origin))

    script = EditScript(operations)
    logger.debug(
        "Diff %d -> %d tracks: %s", len(base_tokens), len(target_tokens), script.summary()
    )
    return script


def clamp_position(index: Optional[int], size: int) -> int:
    """Clamp an insert position into ``0..size``; None means the end."""
    if index is None:
        return size
    return min(max(index, 0), size)


def source_position(items: Sequence[str], op: EditOp) -> int:
    """Index of the occurrence a remove or move acts on.

    The hinted slot wins when it holds the id. Otherwise a remove takes the
    last occurrence and a move the first.

    Raises:
        TrackNotFound: If the id is not present
    """
    if op.track_id not in items:
        raise TrackNotFound(op.track_id)
    if op.hint is not None and 0 <= op.hint < len(items) and items[op.hint] == op.track_id:
        return op.hint
    if op.kind == ChangeKind.REMOVE:
        return len(items) - 1 - list(items)[::-1].index(op.track_id)
    return list(items).index(op.track_id)


def apply_operation(items: List[str], op: EditOp) -> None:
    """Apply one op to a list in place.

    Args:
        items: Track ids, modified in place
        op: Op to apply

    Raises:
        TrackNotFound: If a remove or move targets an id that is not present
    """
    if op.kind == ChangeKind.ADD:
        items.insert(clamp_position(op.index, len(items)), op.track_id)
        return

    items.pop(source_position(items, op))
    if op.kind == ChangeKind.MOVE:
        items.insert(clamp_position(op.index, len(items)), op.track_id)


def apply_script(sequence: SequenceLike, operations: Sequence[EditOp]) -> List[str]:
    """Apply ops in order to a copy of ``sequence``.

    Args:
        sequence: Starting sequence
        operations: Ops in apply order

    Returns:
        Resulting list of track ids
    """
    items = _ids(sequence)
    for op in operations:
        apply_operation(items, op)
    return items
