from __future__ import annotations

from typing import List


def split_atoms(line: str) -> List[str]:
    """Split a protocol line into fields.

    - Fields are separated by runs of whitespace.
    - A double-quoted run is one field, quotes removed; `\\` escapes the next
      character inside quotes.
    - An unterminated quote takes the rest of the line.
    """
    atoms: List[str] = []
    i = 0
    n = len(line)
    while i < n:
        c = line[i]
        if c.isspace():
            i += 1
            continue
        if c == '"':
            i += 1
            buf = []
            while i < n and line[i] != '"':
                if line[i] == "\\" and i + 1 < n:
                    i += 1
                buf.append(line[i])
                i += 1
            i += 1  # closing quote
            atoms.append("".join(buf))
            continue
        start = i
        while i < n and not line[i].isspace() and line[i] != '"':
            i += 1
        atoms.append(line[start:i])
    return atoms


def quote_atom(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
