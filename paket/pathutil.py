from __future__ import annotations


def norm_name(p: str) -> str:
    """Normalize an entry name to a canonical forward-slash form.

    Names are flat keys; slashes carry no directory meaning, they are only
    kept stable across platforms.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments and empty names
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Entry name may not contain '..'")
    if not parts:
        raise ValueError("Entry name may not be empty")
    return "/".join(parts)
