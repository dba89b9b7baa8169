from typing import Any, Sequence


def _render(entry: Any, replace_empty: bool) -> str:
    if isinstance(entry, str):
        # " ." keeps the width of the quotes it replaces
        if replace_empty and not entry:
            return " ."
        return f'"{entry}"'
    return str(entry)


def format_matrix(rows: Sequence[Sequence[Any]], replace_empty: bool = False) -> str:
    """
    Render a matrix with right-aligned columns.
    Each row is bracketed and consecutive rows are separated by a blank bracketed
    line, which keeps tall matrices readable in a terminal.
    - An empty matrix renders as `[;]`
    - String entries are quoted; with `replace_empty`, empty strings are shown
    as `.` instead of `""`
    """
    if not rows or not rows[0]:
        return "[;]"
    rendered = [[_render(entry, replace_empty) for entry in row] for row in rows]
    num_cols = len(rendered[0])
    widths = [max(len(row[j]) for row in rendered) for j in range(num_cols)]
    total = sum(widths) + 2 * (num_cols - 1)
    lines = []
    for i, row in enumerate(rendered):
        cells = [cell.rjust(widths[j]) for j, cell in enumerate(row)]
        lines.append("[" + "  ".join(cells) + "]")
        if i < len(rendered) - 1:
            lines.append("[" + " " * total + "]")
    return "\n".join(lines)
