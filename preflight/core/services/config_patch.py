"""
Config patcher — ensure ``key=value`` inside a ``[section]`` of an
INI-like file (``/etc/wsl.conf``) without disturbing anything else.

Pure text in, text out. The scan is a single left-to-right pass over
the lines with three states:

    OUTSIDE_SECTION      not in the target section
    INSIDE_KEY_UNSEEN    in the target section, key not found yet
    INSIDE_KEY_SEEN      in the target section, key already rewritten

Lines the patch does not own (comments, blanks, other keys, other
sections) are emitted verbatim and in their original order. Applying
the patch to its own output returns the same text, because the key
line it inserts is exactly the line it rewrites on the next pass.
"""

from __future__ import annotations

import difflib
import enum
import re


class ScanState(enum.Enum):
    OUTSIDE_SECTION = "outside_section"
    INSIDE_KEY_UNSEEN = "inside_key_unseen"
    INSIDE_KEY_SEEN = "inside_key_seen"


def _split_lines(content: str) -> list[str]:
    # split("\n") rather than splitlines(): form feeds and other exotic
    # separators belong to the line, not between lines.
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def ensure_key_in_section(content: str, section: str, key: str, value: str) -> str:
    """Return ``content`` with ``key=value`` guaranteed inside ``[section]``.

    Rules, applied in one pass:

    1. A line starting with ``[section]`` enters the section.
    2. Any other ``[header]`` while inside with the key unseen gets
       ``key=value`` injected just before it, then leaves the section.
    3. Inside, a line matching ``^\\s*key\\s*=`` is replaced by ``key=value``.
    4. At the end: no section at all appends ``[section]`` + ``key=value``;
       section open with the key unseen appends ``key=value``.

    Every occurrence of the section is handled independently. The
    result always ends with a newline.

    Args:
        content: Existing file content (may be empty).
        section: Section name without brackets, e.g. ``"boot"``.
        key: Key to enforce, e.g. ``"systemd"``.
        value: Value to enforce, e.g. ``"true"``.

    Returns:
        The patched content.
    """
    header = f"[{section}]"
    key_line = f"{key}={value}"
    key_re = re.compile(rf"^\s*{re.escape(key)}\s*=")

    out: list[str] = []
    state = ScanState.OUTSIDE_SECTION
    section_seen = False

    for line in _split_lines(content):
        if line.startswith(header):
            state = ScanState.INSIDE_KEY_UNSEEN
            section_seen = True
            out.append(line)
        elif line.startswith("["):
            if state is ScanState.INSIDE_KEY_UNSEEN:
                out.append(key_line)
            state = ScanState.OUTSIDE_SECTION
            out.append(line)
        elif state is not ScanState.OUTSIDE_SECTION and key_re.match(line):
            out.append(key_line)
            state = ScanState.INSIDE_KEY_SEEN
        else:
            out.append(line)

    if not section_seen:
        out.extend([header, key_line])
    elif state is ScanState.INSIDE_KEY_UNSEEN:
        out.append(key_line)

    return "\n".join(out) + "\n"


def config_diff(old: str, new: str, path: str = "wsl.conf") -> str:
    """Unified diff between two versions of a config file ("" if equal)."""
    if old == new:
        return ""
    return "".join(
        difflib.unified_diff(
            old.splitlines(keepends=True),
            new.splitlines(keepends=True),
            fromfile=f"{path} (current)",
            tofile=f"{path} (patched)",
        )
    )
