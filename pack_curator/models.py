"""
Модели графа: пакеты и ребра зависимостей между ними.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .constants import PARENT_SEPARATOR, UNCERTAIN_MARKER


# ============= Dependencies =============

class DependencyKind(Enum):
    """Тип зависимости"""
    MANDATORY = "mandatory"  # без нее пакет не работает
    OPTIONAL = "optional"  # улучшает, но не обязательна


@dataclass(frozen=True)
class DependencyEdge:
    """Ребро "source требует/рекомендует target" (target уже канонизирован)"""
    source: str
    target: str
    kind: DependencyKind
    declared_target: Optional[str] = None  # ID до канонизации, если отличается

    @property
    def mandatory(self) -> bool:
        return self.kind == DependencyKind.MANDATORY


@dataclass(frozen=True)
class DependentRef:
    """Обратная ссылка: пакет identifier зависит от текущего"""
    identifier: str
    kind: DependencyKind

    @property
    def mandatory(self) -> bool:
        return self.kind == DependencyKind.MANDATORY


# ============= Labels =============

@dataclass(frozen=True)
class Label:
    """Категория или сторона; uncertain - автоматическое предположение (суффикс "?")"""
    value: str
    uncertain: bool = False

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["Label"]:
        if text is None:
            return None
        text = text.strip()
        if not text:
            return None
        if text.endswith(UNCERTAIN_MARKER):
            value = text[:-len(UNCERTAIN_MARKER)].strip()
            return cls(value, uncertain=True) if value else None
        return cls(text)

    @classmethod
    def guess(cls, value: str) -> "Label":
        return cls(value, uncertain=True)

    def render(self) -> str:
        return f"{self.value}{UNCERTAIN_MARKER}" if self.uncertain else self.value

    def __str__(self) -> str:
        return self.render()


# ============= Packages =============

@dataclass
class PackageRecord:
    """Результат чтения одного логического пакета из архива (до слияния в граф)"""
    identifier: str  # канонический
    declared_identifier: str
    name: str
    file: str
    disabled: bool = False
    forge: bool = False
    fabric: bool = False
    link: Optional[str] = None
    parent: Optional[str] = None
    index_side: Optional[str] = None
    dependencies: List[DependencyEdge] = field(default_factory=list)


@dataclass
class PackageNode:
    """Узел графа - один логический пакет (мод)"""
    identifier: str
    name: str
    file: Optional[str] = None
    declared_identifier: Optional[str] = None
    active: bool = True
    present: bool = True
    forge: bool = False
    fabric: bool = False
    link: Optional[str] = None
    side: Optional[Label] = None
    category: Optional[Label] = None
    parent: Optional[str] = None
    index_side: Optional[str] = None
    dependencies: List[DependencyEdge] = field(default_factory=list)
    # Для "ушедших" пакетов: текст колонок из прошлого отчета как есть
    raw_dependents: Optional[str] = None
    raw_dependencies: Optional[str] = None
    raw_optional: Optional[str] = None

    @classmethod
    def from_record(cls, record: PackageRecord) -> "PackageNode":
        return cls(
            identifier=record.identifier,
            declared_identifier=record.declared_identifier,
            name=record.name,
            file=record.file,
            active=not record.disabled,
            forge=record.forge,
            fabric=record.fabric,
            link=record.link,
            parent=record.parent,
            index_side=record.index_side,
            dependencies=list(record.dependencies),
        )

    @property
    def gone(self) -> bool:
        return not self.present

    @property
    def bundled(self) -> bool:
        return self.parent is not None

    @property
    def display_identifier(self) -> str:
        return self.declared_identifier or self.identifier

    @property
    def qualified_identifier(self) -> str:
        if self.parent:
            return f"{self.parent}{PARENT_SEPARATOR}{self.display_identifier}"
        return self.display_identifier

    @property
    def mandatory_dependencies(self) -> List[DependencyEdge]:
        return [dep for dep in self.dependencies if dep.mandatory]

    @property
    def optional_dependencies(self) -> List[DependencyEdge]:
        return [dep for dep in self.dependencies if not dep.mandatory]

    def has_category(self, value: str) -> bool:
        return self.category is not None and self.category.value == value
