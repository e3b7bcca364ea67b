"""REST path normalization shared by the scanners, the assembler and the resolver."""
import re
from typing import List

_PATH_PARAM_RE = re.compile(r"\{([^}]+)\}")


def normalize_path(p: str) -> str:
    """Leading slash, no duplicate slashes, no trailing slash except for "/".

    An empty input stays empty so "no path" remains distinguishable from "/".
    """
    if not p:
        return ""
    if not p.startswith("/"):
        p = "/" + p
    while "//" in p:
        p = p.replace("//", "/")
    if len(p) > 1 and p.endswith("/"):
        p = p[:-1]
    return p


def join_paths(base: str, sub: str) -> str:
    if not base:
        return normalize_path(sub)
    if not sub:
        return normalize_path(base)
    return normalize_path(base + "/" + sub)


def build_entry_path(class_path: str, method_path: str) -> str:
    """Path of an entry point; a handler with no @Path anywhere is served at "/"."""
    return join_paths(class_path, method_path) or "/"


def strip_base_path(path: str, base: str) -> str:
    """Remove ``base`` from the front of ``path`` on a segment boundary."""
    if not base or base == "/":
        return path
    if path == base:
        return ""
    if path.startswith(base + "/"):
        return path[len(base):]
    return path


def extract_path_params(path: str) -> List[str]:
    return _PATH_PARAM_RE.findall(path)
