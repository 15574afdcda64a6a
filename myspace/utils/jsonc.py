"""Loading devcontainer.json files, which allow ``//`` comments."""

import json
from pathlib import Path
from typing import Any, Dict, Union


def strip_line_comments(text: str) -> str:
    """Remove ``//`` comments running to end of line.

    Comment markers inside JSON string literals are left alone, so URLs in
    values survive.
    """
    out = []
    in_string = False
    escaped = False
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
            out.append(char)
        elif char == "/" and text.startswith("//", i):
            newline = text.find("\n", i)
            if newline == -1:
                break
            i = newline
            continue
        else:
            out.append(char)
        i += 1
    return "".join(out)


def loads(text: str) -> Any:
    """Parse JSON text that may contain line comments."""
    return json.loads(strip_line_comments(text))


def load_devcontainer_json(path: Union[str, Path]) -> Dict[str, Any]:
    """Read and parse a devcontainer.json file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not a JSON object
    """
    document = loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return document
