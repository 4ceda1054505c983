"""
Канонизация идентификаторов пакетов.

Некоторые моды распространяются под разными ID в разных экосистемах загрузчиков
(fabric-api / fabric_api, create / flywheel / ponder). Группа эквивалентных ID
представлена первым элементом группы.
"""
from typing import Iterable, List, Optional, Sequence

from .constants import DEFAULT_EQUIVALENT_GROUPS


class IdentifierCanonicalizer:
    """Отображает идентификатор на представителя его группы эквивалентности"""

    def __init__(self, groups: Optional[Iterable[Sequence[str]]] = None):
        source = DEFAULT_EQUIVALENT_GROUPS if groups is None else groups
        self.groups: List[List[str]] = [list(group) for group in source if group]
        seen = set()
        for group in self.groups:
            overlap = seen.intersection(group)
            if overlap:
                raise ValueError(f"Identifiers belong to several equivalence groups: {sorted(overlap)}")
            seen.update(group)

    def group_of(self, identifier: str) -> Optional[List[str]]:
        for group in self.groups:
            if identifier in group:
                return group
        return None

    def canonicalize(self, identifier: str) -> str:
        group = self.group_of(identifier)
        return group[0] if group else identifier

    def equivalent(self, first: str, second: str) -> bool:
        """Совпадают ли идентификаторы с точностью до группы эквивалентности"""
        return first == second or self.canonicalize(first) == self.canonicalize(second)

    __call__ = canonicalize


_default = IdentifierCanonicalizer()


def canonicalize(identifier: str) -> str:
    """Канонизировать по встроенной таблице групп"""
    return _default.canonicalize(identifier)


__all__ = ["IdentifierCanonicalizer", "canonicalize"]
