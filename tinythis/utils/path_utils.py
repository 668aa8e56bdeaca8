"""
Turning pasted or typed text into file paths.

Terminals deliver a drag-and-drop or a paste as one string. Depending on the
platform and the file manager it contains plain paths separated by spaces or
newlines, paths wrapped in double quotes (when they contain spaces), or
`file://` URIs with percent-encoded characters.
"""
from pathlib import Path
from typing import List
from urllib.parse import unquote, urlparse


def _split_tokens(text: str) -> List[str]:
    tokens: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
            continue
        if char.isspace() and not in_quotes:
            if current:
                tokens.append("".join(current))
                current = []
            continue
        current.append(char)
    if current:
        tokens.append("".join(current))
    return tokens


def _token_to_path(token: str) -> Path:
    if token.lower().startswith("file://"):
        parsed = urlparse(token)
        path = unquote(parsed.path)
        # file:///C:/videos/a.mp4 -> C:/videos/a.mp4
        if len(path) > 2 and path[0] == "/" and path[2] == ":":
            path = path[1:]
        return Path(path)
    return Path(token).expanduser()


def parse_paste_paths(text: str) -> List[Path]:
    """
    Splits pasted text into paths.

    Tokens are separated by whitespace; double quotes group a token that
    contains spaces. `file://` URIs are decoded into local paths.

    Args:
        text: The raw pasted text.

    Returns:
        The paths in the order they appear. Nothing is checked against the
        filesystem here; the queue validates each path when it is added.
    """
    return [_token_to_path(token) for token in _split_tokens(text.strip()) if token]
