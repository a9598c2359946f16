"""Edit-script alignment and semantic cleanup for normalized text.

An edit script is a list of ``[event, text]`` pairs. Concatenating the
unchanged and deleted texts yields the old string; concatenating the
unchanged and inserted texts yields the new string.
"""

from __future__ import annotations

from difflib import SequenceMatcher

from docwatch.domains.diffing.core.types import DiffEvent

Edit = list  # [DiffEvent, str], mutable so cleanup passes can rewrite text in place

_EQUAL = DiffEvent.UNCHANGED
_DELETE = DiffEvent.DELETED
_INSERT = DiffEvent.INSERTED


def align(old: str, new: str) -> list[Edit]:
    """Compute a character-level edit script from ``old`` to ``new``.

    SequenceMatcher picks the longest matching block first and recurses on
    both sides of it, so ties between equally short scripts resolve towards
    the longest unchanged run. Within a replaced region the deletion is
    emitted before the insertion.
    """
    matcher = SequenceMatcher(None, old, new, autojunk=False)
    edits: list[Edit] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            edits.append([_EQUAL, old[i1:i2]])
            continue
        if i2 > i1:
            edits.append([_DELETE, old[i1:i2]])
        if j2 > j1:
            edits.append([_INSERT, new[j1:j2]])
    return edits


def common_prefix_length(first: str, second: str) -> int:
    limit = min(len(first), len(second))
    index = 0
    while index < limit and first[index] == second[index]:
        index += 1
    return index


def common_suffix_length(first: str, second: str) -> int:
    limit = min(len(first), len(second))
    index = 0
    while index < limit and first[-1 - index] == second[-1 - index]:
        index += 1
    return index


def cleanup_semantic(edits: list[Edit]) -> None:
    """Dissolve unchanged runs that are no longer than the edits around them.

    Character-level alignment happily keeps coincidental one or two letter
    matches ("r" shared by "greek" and "norse"). An unchanged run whose length
    does not exceed the largest edit on its left and the largest edit on its
    right is turned into a deletion plus an insertion, after which the edits
    are merged and shifted onto word boundaries. Mutates ``edits`` in place.
    """
    changes = False
    equalities: list[int] = []
    last_equality: str | None = None
    pointer = 0
    inserted_before = deleted_before = 0
    inserted_after = deleted_after = 0

    while pointer < len(edits):
        event, text = edits[pointer]
        if event is _EQUAL:
            equalities.append(pointer)
            inserted_before, deleted_before = inserted_after, deleted_after
            inserted_after = deleted_after = 0
            last_equality = text
        else:
            if event is _INSERT:
                inserted_after += len(text)
            else:
                deleted_after += len(text)
            if (
                last_equality
                and len(last_equality) <= max(inserted_before, deleted_before)
                and len(last_equality) <= max(inserted_after, deleted_after)
            ):
                index = equalities.pop()
                edits[index : index + 1] = [[_DELETE, last_equality], [_INSERT, last_equality]]
                # the equality before this one has to be evaluated again
                if equalities:
                    equalities.pop()
                pointer = equalities[-1] if equalities else -1
                inserted_before = deleted_before = 0
                inserted_after = deleted_after = 0
                last_equality = None
                changes = True
        pointer += 1

    if changes:
        merge_edits(edits)
    shift_to_word_boundaries(edits)


def merge_edits(edits: list[Edit]) -> None:
    """Merge adjacent edits of a region and factor out shared affixes.

    Every run of edits between two unchanged runs becomes at most one
    deletion followed by at most one insertion. A prefix or suffix common to
    both is moved into the neighbouring unchanged run. Mutates ``edits``.
    """
    edits.append([_EQUAL, ""])
    pointer = 0
    count_delete = count_insert = 0
    text_delete = text_insert = ""

    while pointer < len(edits):
        event, text = edits[pointer]
        if event is _INSERT:
            count_insert += 1
            text_insert += text
            pointer += 1
        elif event is _DELETE:
            count_delete += 1
            text_delete += text
            pointer += 1
        else:
            if count_delete + count_insert > 1:
                if count_delete and count_insert:
                    common = common_prefix_length(text_insert, text_delete)
                    if common:
                        before = pointer - count_delete - count_insert - 1
                        if before >= 0 and edits[before][0] is _EQUAL:
                            edits[before][1] += text_insert[:common]
                        else:
                            edits.insert(0, [_EQUAL, text_insert[:common]])
                            pointer += 1
                        text_insert = text_insert[common:]
                        text_delete = text_delete[common:]
                    common = common_suffix_length(text_insert, text_delete)
                    if common:
                        edits[pointer][1] = text_insert[-common:] + edits[pointer][1]
                        text_insert = text_insert[:-common]
                        text_delete = text_delete[:-common]
                merged: list[Edit] = []
                if text_delete:
                    merged.append([_DELETE, text_delete])
                if text_insert:
                    merged.append([_INSERT, text_insert])
                pointer -= count_delete + count_insert
                edits[pointer : pointer + count_delete + count_insert] = merged
                pointer += len(merged) + 1
            elif pointer and edits[pointer - 1][0] is _EQUAL:
                edits[pointer - 1][1] += text
                del edits[pointer]
            else:
                pointer += 1
            count_delete = count_insert = 0
            text_delete = text_insert = ""

    if edits and edits[-1][0] is _EQUAL and not edits[-1][1]:
        edits.pop()

    # A single edit wedged between two unchanged runs can sometimes slide
    # sideways and swallow one of them: A<ins>BA</ins>C -> <ins>AB</ins>AC
    changes = False
    pointer = 1
    while pointer < len(edits) - 1:
        if edits[pointer - 1][0] is _EQUAL and edits[pointer + 1][0] is _EQUAL:
            previous_text = edits[pointer - 1][1]
            text = edits[pointer][1]
            next_text = edits[pointer + 1][1]
            if text.endswith(previous_text):
                if previous_text:
                    edits[pointer][1] = previous_text + text[: -len(previous_text)]
                    edits[pointer + 1][1] = previous_text + next_text
                del edits[pointer - 1]
                changes = True
            elif text.startswith(next_text):
                edits[pointer - 1][1] += next_text
                edits[pointer][1] = text[len(next_text) :] + next_text
                del edits[pointer + 1]
                changes = True
        pointer += 1

    if changes:
        merge_edits(edits)


def _boundary_score(left: str, right: str) -> int:
    """Score how natural a split between ``left`` and ``right`` reads.

    6 at the edges of the text, 2 next to whitespace, 1 next to other
    punctuation, 0 in the middle of a word.
    """
    if not left or not right:
        return 6
    last = left[-1]
    first = right[0]
    if last.isspace() or first.isspace():
        return 2
    if not last.isalnum() or not first.isalnum():
        return 1
    return 0


def shift_to_word_boundaries(edits: list[Edit]) -> None:
    """Slide single edits between unchanged runs onto word boundaries.

    ``the c<ins>at c</ins>ame`` reads better as ``the <ins>cat </ins>came``;
    the content on both sides is unchanged by the shift. Mutates ``edits``.
    """
    pointer = 1
    while pointer < len(edits) - 1:
        if edits[pointer - 1][0] is _EQUAL and edits[pointer + 1][0] is _EQUAL:
            equality1 = edits[pointer - 1][1]
            edit = edits[pointer][1]
            equality2 = edits[pointer + 1][1]

            # shift the edit as far left as possible first
            common = common_suffix_length(equality1, edit)
            if common:
                shared = edit[-common:]
                equality1 = equality1[:-common]
                edit = shared + edit[:-common]
                equality2 = shared + equality2

            best = (equality1, edit, equality2)
            best_score = _boundary_score(equality1, edit) + _boundary_score(edit, equality2)
            while edit and equality2 and edit[0] == equality2[0]:
                equality1 += edit[0]
                edit = edit[1:] + equality2[0]
                equality2 = equality2[1:]
                score = _boundary_score(equality1, edit) + _boundary_score(edit, equality2)
                # >= prefers the rightmost of equally good positions
                if score >= best_score:
                    best_score = score
                    best = (equality1, edit, equality2)

            if edits[pointer - 1][1] != best[0]:
                if best[0]:
                    edits[pointer - 1][1] = best[0]
                else:
                    del edits[pointer - 1]
                    pointer -= 1
                edits[pointer][1] = best[1]
                if best[2]:
                    edits[pointer + 1][1] = best[2]
                else:
                    del edits[pointer + 1]
                    pointer -= 1
        pointer += 1
