"""``{json_data(...)}`` placeholder substitution.

An argument such as ``prefix-{json_data(a.b)}-suffix`` is rewritten with the
value found at ``a`` -> ``b`` in the JSON document at the active document
path. Accessor steps are separated by "." or ","; integer steps index
arrays. Placeholders whose value cannot be reached are left untouched.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from .paths import StorageVolumes

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKER = "{json_data("
PLACEHOLDER_RE = re.compile(r"\{json_data\(([^)]*)\)\}")

_MISSING = object()


def parse_accessor(accessor: str) -> list[str]:
    return [step.strip() for step in re.split(r"[.,]", accessor) if step.strip()]


def lookup(document: Any, steps: list[str]) -> Any:
    """Walk document along steps; returns _MISSING when a step fails."""
    node = document
    for step in steps:
        if isinstance(node, dict):
            if step not in node:
                return _MISSING
            node = node[step]
        elif isinstance(node, list):
            try:
                node = node[int(step)]
            except (ValueError, IndexError):
                return _MISSING
        else:
            return _MISSING
    return node


def stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return json.dumps(value)
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class PlaceholderResolver:
    """Replaces json_data placeholders using a document loaded on demand.

    The document is read each time an argument actually contains the
    marker, so a script may download or rewrite it between commands.
    """

    def __init__(self, load_document: Callable[[str], Any]):
        self._load_document = load_document

    @classmethod
    def for_volumes(cls, volumes: StorageVolumes) -> PlaceholderResolver:
        def load(path: str) -> Any:
            with open(volumes.to_host(path), encoding="utf-8") as f:
                return json.load(f)

        return cls(load)

    def resolve(self, argument: str, document_path: str) -> str:
        if PLACEHOLDER_MARKER not in argument:
            return argument

        try:
            document = self._load_document(document_path)
        except (OSError, ValueError) as e:
            logger.warning("cannot load json_data document %s: %s", document_path, e)
            return argument

        def substitute(m: re.Match[str]) -> str:
            value = lookup(document, parse_accessor(m.group(1)))
            if value is _MISSING:
                logger.debug("placeholder %s not found in %s", m.group(0), document_path)
                return m.group(0)
            return stringify(value)

        return PLACEHOLDER_RE.sub(substitute, argument)
