"""Split a SQL script into individual statements."""

from __future__ import annotations

TERMINATOR = ";"
QUOTES = ("'", '"')


def split_statements(text: str) -> list[str]:
    """Return the statements in ``text`` in order, trimmed and non-empty.

    Semicolons inside quoted strings or ``--`` line comments are kept as statement
    text. Comment markers and the newline closing a comment stay in the output since
    the statement text is shown verbatim in the report. An unterminated string or
    comment is not an error: the remainder of the input becomes the last statement.
    """

    statements: list[str] = []
    buffer: list[str] = []
    in_string = False
    in_comment = False
    delimiter = ""

    def flush() -> None:
        statement = "".join(buffer).strip()
        if statement:
            statements.append(statement)
        buffer.clear()

    for index, char in enumerate(text):
        if not in_string and not in_comment and char == "-" and text[index + 1 : index + 2] == "-":
            in_comment = True
            buffer.append(char)
            continue

        if in_comment:
            if char == "\n":
                in_comment = False
            buffer.append(char)
            continue

        if char in QUOTES:
            if not in_string:
                in_string = True
                delimiter = char
            elif char == delimiter and (index == 0 or text[index - 1] != "\\"):
                in_string = False

        if not in_string and char == TERMINATOR:
            flush()
            continue

        buffer.append(char)

    flush()
    return statements
