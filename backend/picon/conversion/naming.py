"""Deterministic, content-addressed output names for resized previews."""
import hashlib
from pathlib import Path
from typing import Mapping

DELIMITER = b"::"


def compute_name(path: Path, params: Mapping[str, str]) -> str:
    """
    SHA-1 of the parameter tokens (key, value, key, value, ...) in the
    mapping's own order, joined by '::', then '::' and the file bytes.
    Reordering the same parameters gives a different name.
    """
    tokens = []
    for key, value in params.items():
        tokens.append(str(key).encode("utf-8"))
        tokens.append(str(value).encode("utf-8"))
    tokens.append(Path(path).read_bytes())
    return hashlib.sha1(DELIMITER.join(tokens)).hexdigest() + ".png"
