# pattern_engine/core/slots.py

from typing import Mapping, Optional
import re

# Placeholder marker usable inside identifiers: __slot_name__
SLOT_RE = re.compile(r"__slot_([A-Za-z0-9]+)__")


def slot(key: str) -> str:
    """Marker text for a slot key"""
    return f"__slot_{key}__"


def substitute_slots(text: Optional[str], bindings: Mapping[str, str]) -> Optional[str]:
    """Replace every bound slot marker in text; unbound markers are left in place"""
    if not text or "__slot_" not in text:
        return text

    def _replace(match: 're.Match') -> str:
        value = bindings.get(match.group(1))
        return match.group(0) if value is None else value

    return SLOT_RE.sub(_replace, text)
