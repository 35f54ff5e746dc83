# =============================================================================
# shop_core/models/catalog.py
# Colour and Texture Catalog Models
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shop_core.models.orders import new_id


PARTS = ("base", "ball", "top")


@dataclass(frozen=True)
class ColorOption:
    name: str
    hex: str
    id: Optional[str] = None
    position: Optional[int] = None

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"name": self.name, "hex": self.hex}
        if self.id is not None:
            record["id"] = self.id
        if self.position is not None:
            record["position"] = self.position
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> ColorOption:
        return cls(
            name=record["name"],
            hex=record["hex"],
            id=record.get("id"),
            position=record.get("position"),
        )


@dataclass(frozen=True)
class Texture:
    name: str
    id: str = field(default_factory=new_id)

    def to_record(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


DEFAULT_COLORS = (
    ColorOption("Branco", "#FFFFFF"),
    ColorOption("Preto", "#1F2937"),
    ColorOption("Vermelho", "#EF4444"),
    ColorOption("Azul", "#3B82F6"),
    ColorOption("Verde", "#22C55E"),
    ColorOption("Amarelo", "#EAB308"),
    ColorOption("Laranja", "#F97316"),
    ColorOption("Roxo", "#A855F7"),
    ColorOption("Rosa", "#EC4899"),
    ColorOption("Cinza", "#6B7280"),
)

DEFAULT_TEXTURES = ("Liso", "Hexagonal", "Listrado", "Pontilhado", "Voronoi")


@dataclass
class PartsColors:
    """Available colours for each of the three printed parts."""
    base: List[ColorOption] = field(default_factory=list)
    ball: List[ColorOption] = field(default_factory=list)
    top: List[ColorOption] = field(default_factory=list)

    @classmethod
    def defaults(cls) -> PartsColors:
        return cls(base=list(DEFAULT_COLORS), ball=list(DEFAULT_COLORS), top=list(DEFAULT_COLORS))

    def is_empty(self) -> bool:
        return not (self.base or self.ball or self.top)

    def for_part(self, part: str) -> List[ColorOption]:
        if part not in PARTS:
            raise ValueError(f"Unknown part type: {part}")
        return getattr(self, part)

    def to_record(self) -> Dict[str, List[Dict[str, Any]]]:
        return {part: [c.to_record() for c in getattr(self, part)] for part in PARTS}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> PartsColors:
        return cls(**{
            part: [ColorOption.from_record(c) for c in record.get(part) or []]
            for part in PARTS
        })

    @classmethod
    def from_rows(cls, rows: List[Dict[str, Any]]) -> PartsColors:
        """Group the flat ``colors`` table (one row per part_type) by part."""
        colors = cls()
        for row in rows:
            part = row.get("part_type")
            if part in PARTS:
                colors.for_part(part).append(ColorOption(
                    name=row["name"],
                    hex=row["hex"],
                    id=row.get("id"),
                    position=row.get("position"),
                ))
        for part in PARTS:
            colors.for_part(part).sort(key=lambda c: (c.position is None, c.position or 0))
        return colors
