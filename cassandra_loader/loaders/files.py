from typing import Optional


def file_extension(path: Optional[str]) -> str:
    """Text after the last dot of ``path``, or "" when there is none.

    The whole string is searched, so ``"a.b/c"`` yields ``"b/c"``.
    """
    if not path:
        return ""
    _, dot, tail = path.rpartition(".")
    return tail if dot else ""
