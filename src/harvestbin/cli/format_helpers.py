"""Text layout helpers shared by format_text() implementations."""

from __future__ import annotations


def tabular(rows: list[list[str]], sep: str = "  ") -> str:
    """Left-align ragged rows into columns.

    >>> tabular([["1", "init"], ["4242", "sshd", "-D"]])
    '1     init\\n4242  sshd  -D'
    """
    if not rows:
        return ""
    width = max(len(row) for row in rows)
    widths = [
        max(len(row[index]) if index < len(row) else 0 for row in rows) for index in range(width)
    ]
    rendered: list[str] = []
    for row in rows:
        padded = [
            (row[index] if index < len(row) else "").ljust(widths[index]) for index in range(width)
        ]
        rendered.append(sep.join(padded).rstrip())
    return "\n".join(rendered)


def kv_block(pairs: list[tuple[str, str | None]]) -> str:
    """Render `key: value` lines, dropping pairs whose value is None.

    >>> kv_block([("Exit code", "0"), ("Elapsed", "0.012s"), ("Signal", None)])
    'Exit code: 0\\nElapsed: 0.012s'
    """
    return "\n".join(f"{key}: {value}" for key, value in pairs if value is not None)
