"""Structural parsing of the reservation listing.

A program's status is read from the block of markup that belongs to that
program alone: starting at the text node carrying its label, the block grows
through ancestors and stops at the first of: a known program card, the row
holding a reserve button or status badge, a list, table or page region
(header, nav, notice section), or an ancestor naming another program.
Sold-out markers only count inside that block, so a marker next to one
program never marks its neighbour as closed, and a page notice never marks
a lone program as closed.
"""

import re
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Set, Tuple

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from drive_monitor.constants import SOLD_OUT_MARKERS
from drive_monitor.models.programs import AvailabilityResult, all_program_names

CARD_CLASSES = ("program-item", "course-item", "product-item")
# Reserve buttons and status badges mark the edge of one program's row
CONTROL_TAGS = ("button",)
CONTROL_CLASSES = ("btn", "status", "badge", "availability")
# Containers that hold many rows or unrelated page regions
LIST_TAGS = ("ul", "ol", "table", "tbody", "thead", "tfoot")
PAGE_REGION_TAGS = ("section", "main", "nav", "header", "footer", "aside")
MAX_BLOCK_DEPTH = 4
NON_CONTENT_TAGS = ("script", "style", "noscript", "template")
_STOP_TAGS = ("body", "html", "[document]")
_BOUNDARY_TAGS = _STOP_TAGS + LIST_TAGS + PAGE_REGION_TAGS


def _label_pattern(label: str) -> Pattern[str]:
    # Whole-label match: "M Drift I" must not match inside "M Drift II"
    return re.compile(r"(?<![\w-])" + re.escape(label) + r"(?![\w-])", re.IGNORECASE)


class _LabelIndex:
    """Maps label text back to the program it names."""

    def __init__(self, labels: Mapping[str, Sequence[str]]):
        self._patterns: List[Tuple[str, Pattern[str], int]] = []
        for program, program_labels in labels.items():
            for label in program_labels:
                if label.strip():
                    self._patterns.append((program, _label_pattern(label.strip()), len(label)))

    def programs_in(self, text: str) -> Set[str]:
        """
        Programs named in ``text``.

        Where one label sits inside a longer one ("Intensive" in "M Intensive"),
        only the longer label counts.
        """
        spans: List[Tuple[int, int, str]] = []
        for program, pattern, _ in self._patterns:
            for match in pattern.finditer(text):
                spans.append((match.start(), match.end(), program))

        found: Set[str] = set()
        for start, end, program in spans:
            shadowed = any(
                other_start <= start
                and end <= other_end
                and (other_end - other_start) > (end - start)
                for other_start, other_end, _ in spans
            )
            if not shadowed:
                found.add(program)
        return found


def _has_class(tag: Tag, names: Sequence[str]) -> bool:
    classes = tag.get("class") or []
    return any(name in classes for name in names)


def _has_control(tag: Tag) -> bool:
    if tag.name in CONTROL_TAGS or _has_class(tag, CONTROL_CLASSES):
        return True
    return bool(tag.find(list(CONTROL_TAGS)) or tag.find(class_=list(CONTROL_CLASSES)))


def _program_block(node: NavigableString, program: str, index: _LabelIndex) -> Tag:
    block = node.parent
    for depth, ancestor in enumerate(node.parents):
        if depth >= MAX_BLOCK_DEPTH or ancestor.name in _BOUNDARY_TAGS:
            break
        if _has_class(ancestor, CARD_CLASSES):
            return ancestor
        if index.programs_in(ancestor.get_text(" ")) - {program}:
            break
        block = ancestor
        if _has_control(ancestor):
            break
    return block


def _has_marker(text: str, markers: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(marker.lower() in lowered for marker in markers)


def parse_availability(
    html: str,
    programs: Iterable[str],
    keywords: Optional[Mapping[str, Sequence[str]]] = None,
    markers: Sequence[str] = SOLD_OUT_MARKERS,
) -> AvailabilityResult:
    """
    Read per-program availability from listing markup.

    A program is available when its label appears and none of the blocks it
    appears in carries a sold-out/closed marker. A program whose label does
    not appear at all is unavailable.

    Args:
        html: Listing page markup
        programs: Program names to report on
        keywords: Extra labels per program (e.g. the Korean name)
        markers: Sold-out/closed marker strings

    Returns:
        Program name -> available
    """
    requested = list(dict.fromkeys(programs))
    keywords = keywords or {}

    labels: Dict[str, List[str]] = {name: [name] for name in all_program_names()}
    for name in requested:
        labels[name] = [name, *keywords.get(name, [])]
    index = _LabelIndex(labels)

    result: AvailabilityResult = {name: False for name in requested}
    if not html or not requested:
        return result

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(NON_CONTENT_TAGS):
        tag.decompose()

    blocks: Dict[str, List[Tag]] = {name: [] for name in requested}
    for node in soup.find_all(string=True):
        # Comments, doctypes and CDATA are not visible text
        if isinstance(node, PreformattedString) or node.parent is None:
            continue
        named = index.programs_in(str(node))
        for name in requested:
            if name in named:
                blocks[name].append(_program_block(node, name, index))

    for name, program_blocks in blocks.items():
        if not program_blocks:
            continue
        result[name] = not any(
            _has_marker(block.get_text(" "), markers) for block in program_blocks
        )
    return result
