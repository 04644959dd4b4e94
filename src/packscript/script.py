"""Reading scripts from text.

A script is one command per line. Tokens are split shell-style, but quotes
are kept on the tokens so commands can strip them where they matter.
Lines starting with "#" or ";" are comments.

Package files group scripts under ``[section]`` headings:

    [Install theme]
    download https://example.com/theme.zip sdmc:/downloads/
    unzip sdmc:/downloads/theme.zip sdmc:/themes/
"""

from __future__ import annotations

import re
import shlex
from pathlib import Path

from .types import Command, CommandList

_SECTION_RE = re.compile(r"^\[(.+)\]$")


def tokenize_line(line: str) -> Command:
    lexer = shlex.shlex(line, posix=False)
    lexer.whitespace_split = True
    lexer.commenters = ""
    return list(lexer)


def _is_comment(line: str) -> bool:
    return not line or line[0] in "#;"


def parse_script(text: str) -> CommandList:
    """Tokenize one command per line, skipping blank and comment lines."""
    commands: CommandList = []
    for raw in text.splitlines():
        line = raw.strip()
        if _is_comment(line):
            continue
        commands.append(tokenize_line(line))
    return commands


def parse_package(text: str) -> dict[str, CommandList]:
    """Parse a sectioned package file; commands before any heading go under ""."""
    bodies: dict[str, list[str]] = {"": []}
    current = ""
    for raw in text.splitlines():
        m = _SECTION_RE.match(raw.strip())
        if m:
            current = m.group(1).strip()
            bodies.setdefault(current, [])
            continue
        bodies[current].append(raw)

    sections = {name: parse_script("\n".join(lines)) for name, lines in bodies.items()}
    if not sections[""]:
        del sections[""]
    return sections


def load_script(path: Path | str, section: str | None = None) -> CommandList:
    """
    Load commands from a script or package file.

    Args:
        path: Script file
        section: Section to run; defaults to the first section in the file

    Raises:
        KeyError: If section is given but not present
        ValueError: If a line has unbalanced quotes
    """
    sections = parse_package(Path(path).read_text(encoding="utf-8"))
    if section is not None:
        if section not in sections:
            raise KeyError(section)
        return sections[section]
    return next(iter(sections.values()), [])
