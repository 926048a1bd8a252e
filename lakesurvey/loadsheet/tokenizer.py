"""
Quote-aware splitting of field sheet text into rows and fields.

Only comma separated text with double-quote escaping is understood. Unbalanced
quotes never raise, the open field simply runs to the end of the row.
"""

QUOTE = '"'
DELIMITER = ","


def split_rows(text: str) -> list[str]:
    """
    Splits raw sheet text into logical rows.

    A line that leaves a quote open is joined to the next line only when that
    line closes it, so a quoted field may hold one line break. Otherwise the
    open field ends with its line. Each row is stripped and blank rows are
    dropped.

    Parameters
    ----------
    text : str
        The complete content of a sheet.

    Returns
    -------
    list[str]
        The non-blank rows in order.
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    rows = []
    index = 0
    while index < len(lines):
        row = lines[index]
        index += 1
        if _has_open_quote(row) and index < len(lines) and _has_open_quote(lines[index]):
            row = f"{row}\n{lines[index]}"
            index += 1
        rows.append(row)
    return [row.strip() for row in rows if row.strip()]


def _has_open_quote(line: str) -> bool:
    return line.count(QUOTE) % 2 == 1


def tokenize(line: str) -> list[str | None]:
    """
    Splits one sheet row into trimmed fields.

    Parameters
    ----------
    line : str
        A single logical row.

    Returns
    -------
    list[str | None]
        The fields in column order, ``None`` for a field that is empty after trimming.

    Examples
    --------
    .. code-block:: python

        tokenize('A,"B, C",D')
        # ['A', 'B, C', 'D']
    """
    fields: list[str | None] = []
    current = []
    in_quotes = False
    position = 0
    while position < len(line):
        char = line[position]
        if char == QUOTE:
            if in_quotes and line[position + 1 : position + 2] == QUOTE:
                current.append(QUOTE)
                position += 1
            else:
                in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append(_finish_field(current))
            current = []
        else:
            current.append(char)
        position += 1
    fields.append(_finish_field(current))
    return fields


def _finish_field(chars: list[str]) -> str | None:
    value = "".join(chars).strip()
    return value or None
