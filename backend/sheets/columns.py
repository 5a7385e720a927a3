"""
Positional layout of the member worksheet.

Reader and writer both consume ``MEMBER_COLUMNS`` so a column can only
move in one place: a field's letter follows from its position in
``_LAYOUT``. Helpers follow A1 notation rules: worksheet titles are
always quoted and embedded quotes doubled.
"""

from typing import MutableSequence, NamedTuple


class SheetColumn(NamedTuple):
    field: str
    letter: str
    header: str


def column_letter(index: int) -> str:
    """Return the A1 letter(s) for the 1-based column ``index``."""
    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: MutableSequence[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


# (field, header) in worksheet order
_LAYOUT = (
    ("email", "Email"),
    ("tel", "Tel"),
    ("topic", "Topic"),
    ("keyword", "Keyword"),
    ("title", "Title"),
    ("social_link", "IG Link"),
)

MEMBER_COLUMNS = tuple(
    SheetColumn(field, column_letter(position), header)
    for position, (field, header) in enumerate(_LAYOUT, start=1)
)

EMAIL_COLUMN = MEMBER_COLUMNS[0]
EDITABLE_COLUMNS = MEMBER_COLUMNS[1:]


def quote_title(title: str) -> str:
    safe = (title or "").strip()
    if not safe:
        raise ValueError("Worksheet title must not be empty")
    return "'" + safe.replace("'", "''") + "'"


def cell_range(title: str, letter: str, row_index: int) -> str:
    """``'Sheet'!B7`` style single-cell range."""
    if row_index < 1:
        raise ValueError("Row index must be >= 1")
    return f"{quote_title(title)}!{letter}{row_index}"


def table_range(title: str) -> str:
    """Every row of the member columns, e.g. ``'Sheet'!A1:F``."""
    return f"{quote_title(title)}!{MEMBER_COLUMNS[0].letter}1:{MEMBER_COLUMNS[-1].letter}"
