"""Project configuration reader.

Collects ``required_version`` declarations from every ``terraform`` block in
a module directory, the same files Terraform itself loads::

    {project_dir}/*.tf        (HCL, parsed with python-hcl2)
    {project_dir}/*.tf.json   (JSON syntax)

Any unreadable or unparsable file fails the whole read with
``ConfigReadError``; the resolver treats that as "no constraint".
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import hcl2
from lark.exceptions import LarkError

from tfbox.errors import ConfigReadError


def read_required_versions(project_dir: Path) -> list[str]:
    """Return every ``required_version`` string declared in ``project_dir``.

    Files are read in name order.  Raises ``ConfigReadError``.
    """
    if not project_dir.is_dir():
        msg = f"Project directory not found: {project_dir}"
        raise ConfigReadError(msg)

    required: list[str] = []
    for path in sorted(project_dir.glob("*.tf")):
        required.extend(_from_blocks(_load_hcl(path)))
    for path in sorted(project_dir.glob("*.tf.json")):
        required.extend(_from_blocks(_load_json(path)))
    return required


def _load_hcl(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as f:
            return hcl2.load(f)
    except (OSError, UnicodeDecodeError, ValueError, LarkError) as exc:
        msg = f"Failed to parse {path}: {exc}"
        raise ConfigReadError(msg) from exc


def _load_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        msg = f"Failed to parse {path}: {exc}"
        raise ConfigReadError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Expected a JSON object in {path}"
        raise ConfigReadError(msg)
    return data


def _from_blocks(document: dict[str, Any]) -> list[str]:
    """Pull ``required_version`` out of the ``terraform`` block(s).

    python-hcl2 returns repeated blocks as a list of dicts; JSON syntax
    allows either a single object or a list.
    """
    blocks = document.get("terraform", [])
    if isinstance(blocks, dict):
        blocks = [blocks]

    found: list[str] = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        value = block.get("required_version")
        if isinstance(value, str) and value.strip('"').strip():
            # Newer python-hcl2 releases keep the surrounding quotes.
            found.append(value.strip('"').strip())
    return found
