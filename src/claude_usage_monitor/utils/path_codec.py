"""Map a workspace path to the directory name Claude Code logs it under."""

_SEPARATORS = ("/", "\\")


def encode_path(path: str) -> str:
    """Project directory name for a workspace path.

    /home/u/proj → -home-u-proj. Hyphens already in the path are kept, so the
    mapping is not reversible.
    """
    if not path:
        return ""
    # A trailing separator names the same workspace
    trimmed = path.rstrip("/\\") or path[:1]
    for sep in _SEPARATORS:
        trimmed = trimmed.replace(sep, "-")
    return trimmed
