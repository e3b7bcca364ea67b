"""
AST-lite lexical helpers for Java source text.

Everything here works on single lines of raw text. There is no tokenizer and
no parser: annotations, declarations and call sites are recognised by shape,
and anything that does not fit a shape is ignored rather than guessed at.
"""
import logging
import re
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

from ..config import settings
from ..observability import record_fallback

logger = logging.getLogger(__name__)

VISIBILITY_RE = re.compile(r"\b(public|protected|private)\b")
HTTP_VERBS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")
CLASS_KEYWORDS = ("class", "interface")
CLASS_MODIFIERS = {
    "public", "protected", "private", "abstract", "final", "static",
    "sealed", "non-sealed", "strictfp",
}
# Identifiers that precede "(" without being a call
NON_CALL_KEYWORDS = {"if", "for", "while", "switch", "catch", "synchronized", "super", "this"}

_ANNOTATION_RE = re.compile(r"@([A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)")
_STRING_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')
_PACKAGE_RE = re.compile(r"^\s*package\s+([\w.]+)\s*;")
_IDENT_CHARS = re.compile(r"[A-Za-z0-9_]")

Annotation = Tuple[str, Optional[str]]


def read_source_lines(path: str) -> Optional[List[str]]:
    """Read a source file fully, or return None when it cannot be used."""
    p = Path(path)
    try:
        if p.stat().st_size > settings.MAX_FILE_MB * 1024 * 1024:
            record_fallback("skipped_large", str(path))
            return None
        with p.open("r", encoding=settings.SOURCE_ENCODING, errors="replace") as fh:
            return fh.read().splitlines()
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        record_fallback("unreadable", str(path))
        return None


def is_comment(trimmed: str) -> bool:
    return trimmed.startswith(("//", "/*", "*"))


def _matching_paren(line: str, start: int) -> int:
    depth = 0
    quote = None
    i = start
    while i < len(line):
        c = line[i]
        if quote:
            if c == "\\":
                i += 2
                continue
            if c == quote:
                quote = None
        elif c in "\"'":
            quote = c
        elif c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_annotations(line: str) -> Tuple[List[Annotation], str]:
    """Split leading annotations off a line.

    Returns ``[(simple_name, args_or_None), ...]`` and the remaining text.
    ``@javax.ws.rs.GET`` is reported as ``GET``.
    """
    annotations: List[Annotation] = []
    n = len(line)
    i = 0
    while True:
        while i < n and line[i].isspace():
            i += 1
        m = _ANNOTATION_RE.match(line, i)
        if not m:
            break
        name = m.group(1).rsplit(".", 1)[-1]
        j = m.end()
        k = j
        while k < n and line[k].isspace():
            k += 1
        args = None
        if k < n and line[k] == "(":
            close = _matching_paren(line, k)
            if close < 0:
                args, j = line[k + 1:], n
            else:
                args, j = line[k + 1:close], close + 1
        annotations.append((name, args))
        i = j
    return annotations, line[i:].strip()


def string_literals(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return _STRING_RE.findall(text)


def first_string_literal(text: Optional[str]) -> str:
    literals = string_literals(text)
    return literals[0] if literals else ""


def outer_quoted(line: str) -> str:
    """Text between the first and the last double quote of a line."""
    start = line.find('"')
    end = line.rfind('"')
    if start == -1 or end <= start:
        return ""
    return line[start + 1:end]


def declared_class_name(line: str) -> Optional[str]:
    """Name declared by a ``class``/``interface`` line, else None.

    Only modifiers and annotations may precede the keyword, so prose in
    strings or comments never reads as a declaration.
    """
    _, rest = split_annotations(line)
    tokens = rest.split()
    for i, tok in enumerate(tokens):
        if tok in CLASS_KEYWORDS:
            if i + 1 >= len(tokens) or not all(t in CLASS_MODIFIERS for t in tokens[:i]):
                return None
            name = re.split(r"[{<]", tokens[i + 1], maxsplit=1)[0]
            return name or None
    return None


def declared_method_name(line: str) -> Optional[str]:
    """Last word before the first "(" of a line carrying a visibility keyword."""
    _, rest = split_annotations(line)
    idx = rest.find("(")
    if idx <= 0 or not VISIBILITY_RE.search(rest[:idx]):
        return None
    words = rest[:idx].split()
    return words[-1] if words else None


def is_method_declaration(line: str, method_name: str) -> bool:
    """Declaration (not a call, not an abstract signature) of ``method_name``."""
    trimmed = line.strip()
    if not trimmed or trimmed.endswith(";") or is_comment(trimmed):
        return False
    _, rest = split_annotations(trimmed)
    idx = rest.find("(")
    if idx <= 0:
        return False
    head = rest[:idx]
    if not (VISIBILITY_RE.search(head) or "void " in head):
        return False
    words = head.split()
    return bool(words) and words[-1] == method_name


def method_exists(lines: Sequence[str], method_name: str) -> bool:
    return any(is_method_declaration(line, method_name) for line in lines)


def iter_method_body(lines: Sequence[str], method_name: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, raw_line)`` for the body of the first declaration.

    The body is bounded by brace depth counted from the declaration line; the
    closing line itself is not yielded. A body that opens and closes on the
    declaration line yields nothing.
    """
    in_method = False
    depth = 0
    for lineno, line in enumerate(lines, start=1):
        if not in_method:
            if is_method_declaration(line, method_name):
                in_method = True
                depth = line.count("{") - line.count("}")
                if "{" in line and depth <= 0:
                    return
            continue
        depth += line.count("{") - line.count("}")
        if depth <= 0 and "}" in line:
            return
        yield lineno, line


def called_name(line: str) -> str:
    """Identifier immediately before the first "(" or "" for keywords."""
    idx = line.find("(")
    if idx <= 0:
        return ""
    start = idx
    while start > 0 and _IDENT_CHARS.match(line[start - 1]):
        start -= 1
    name = line[start:idx]
    if name in NON_CALL_KEYWORDS:
        return ""
    return name


def read_package_name(lines: Sequence[str]) -> str:
    for line in lines:
        m = _PACKAGE_RE.match(line)
        if m:
            return m.group(1)
    return ""
