"""
Minimal CSV parser for the public spreadsheet export.

Quotes toggle quoted mode and commas inside quotes do not split a cell.
Doubled quotes inside a quoted field and newlines embedded in a field
are not supported.
"""

from typing import List


def parse_csv_line(line: str) -> List[str]:
    cells: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    cells.append("".join(current).strip())
    return cells


def parse_csv(text: str) -> List[List[str]]:
    """Parse ``text`` into rows of trimmed cells, dropping blank lines."""
    return [parse_csv_line(line) for line in text.splitlines() if line.strip()]
