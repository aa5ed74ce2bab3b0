"""
Storage layer: term model and inference engine.
"""

from nutrisearch_kb.storage.terms import (
    TermKind,
    Term,
    PrefixMap,
    local_name,
)

__all__ = [
    "TermKind",
    "Term",
    "PrefixMap",
    "local_name",
]
