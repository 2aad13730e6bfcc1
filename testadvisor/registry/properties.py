"""
Registry properties file

A ``key=value`` file compatible with the Java properties format the
TestAdvisor recorder library reads: ``#``/``!`` comment lines, ``=`` or ``:``
separators, and backslash escapes. Writes always replace the whole file.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Union

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def read_properties(path: Union[str, Path]) -> Dict[str, str]:
    """Read a properties file into an ordered dict"""
    properties: Dict[str, str] = {}
    with open(path, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()

    logical = ""
    for line in lines:
        stripped = line.lstrip()
        if not logical and (not stripped or stripped[0] in "#!"):
            continue
        logical += stripped
        # An odd number of trailing backslashes continues the line
        trailing = len(logical) - len(logical.rstrip("\\"))
        if trailing % 2 == 1:
            logical = logical[:-1]
            continue
        key, value = _split(logical)
        properties[key] = value
        logical = ""

    if logical:
        key, value = _split(logical)
        properties[key] = value
    return properties


def write_properties(path: Union[str, Path], properties: Dict[str, str]) -> None:
    """Write ``properties`` to ``path``, replacing the file"""
    lines = [f"#{datetime.now().strftime('%a %b %d %H:%M:%S %Y')}"]
    for key, value in properties.items():
        lines.append(f"{_escape(key, is_key=True)}={_escape(value)}")
    Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")


def _split(line: str):
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char in "=: \t":
            break
        index += 1

    key = line[:index]
    rest = line[index:].lstrip(" \t")
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(" \t")
    return _unescape(key), _unescape(rest)


def _unescape(text: str) -> str:
    result = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == "\\" and index + 1 < len(text):
            following = text[index + 1]
            if following == "u" and index + 5 < len(text):
                result.append(chr(int(text[index + 2:index + 6], 16)))
                index += 6
                continue
            result.append(_ESCAPES.get(following, following))
            index += 2
            continue
        result.append(char)
        index += 1
    return "".join(result)


def _escape(text: str, is_key: bool = False) -> str:
    result = []
    for position, char in enumerate(text):
        if char == "\\":
            result.append("\\\\")
        elif char in "=:#!":
            result.append("\\" + char)
        elif char == " " and (is_key or position == 0):
            result.append("\\ ")
        elif char == "\t":
            result.append("\\t")
        elif char == "\n":
            result.append("\\n")
        elif char == "\r":
            result.append("\\r")
        else:
            result.append(char)
    return "".join(result)
