# =============================================================================
# shop_core/services/catalog_service.py
# Colour and Texture Catalogs
# =============================================================================
"""
CatalogService - the colours offered for each printed part and the stock
textures.

The local blobs are always written, so the last known catalog survives a
switch to offline mode. When online, a non-empty remote catalog replaces
the local one; an empty remote table leaves the local catalog in place.
"""

from __future__ import annotations
import json
from typing import Any, List, Optional

from shop_core.config import SyncConfig
from shop_core.data.supabase_client import RemoteStore
from shop_core.errors import RemoteCallError, safe_execute
from shop_core.models.catalog import PARTS, ColorOption, PartsColors, Texture, DEFAULT_TEXTURES
from shop_core.models.orders import new_id
from shop_core.offline.local_store import LocalStore
from shop_core.services.base_service import BaseService, ServiceResult


def _parse_colors(blob: str) -> PartsColors:
    return PartsColors.from_record(json.loads(blob))


def _parse_textures(blob: str) -> List[Texture]:
    return [Texture(name=t["name"], id=t.get("id") or new_id()) for t in json.loads(blob)]


def _parse_legacy_textures(blob: str) -> Optional[List[Texture]]:
    """Older installs stored textures as a plain list of names."""
    parsed = json.loads(blob)
    if isinstance(parsed, list) and parsed and all(isinstance(t, str) for t in parsed):
        return [Texture(name=t) for t in parsed]
    return None


def default_textures() -> List[Texture]:
    return [Texture(name=t) for t in DEFAULT_TEXTURES]


class CatalogService(BaseService):

    def __init__(self, config: SyncConfig, local_store: LocalStore, remote: Optional[RemoteStore] = None):
        super().__init__()
        self._config = config
        self._local = local_store
        self._remote = remote
        self.parts_colors = PartsColors.defaults()
        self.textures: List[Texture] = default_textures()

    @property
    def is_online(self) -> bool:
        return self._remote is not None

    @property
    def texture_names(self) -> List[str]:
        return [t.name for t in self.textures]

    # =========================================================================
    # LOADING
    # =========================================================================

    def load_local(self) -> None:
        keys = self._config.storage_keys

        colors_blob = self._local.get(keys.parts_colors)
        if colors_blob:
            self.parts_colors = safe_execute(
                _parse_colors, colors_blob,
                default=PartsColors.defaults(),
                error_message="Stored colour catalog is unreadable, using defaults",
            )

        textures_blob = self._local.get(keys.textures)
        legacy_blob = self._local.get(keys.legacy_textures)
        if textures_blob:
            self.textures = safe_execute(
                _parse_textures, textures_blob,
                default=default_textures(),
                error_message="Stored textures are unreadable, using defaults",
            )
        elif legacy_blob:
            migrated = safe_execute(_parse_legacy_textures, legacy_blob, default=None)
            if migrated:
                self.logger.info(f"Migrated {len(migrated)} legacy textures")
                self.textures = migrated
                self._save_textures()

    async def refresh_from_remote(self) -> ServiceResult:
        """Pull both catalogs from Supabase; empty remote tables are ignored."""
        if self._remote is None:
            return ServiceResult.fail("Catalog refresh needs a remote store", error_code="OFFLINE")

        try:
            with self.log_operation("Fetching catalogs"):
                color_rows = await self._remote.select(self._config.colors_table)
                texture_rows = await self._remote.select(
                    self._config.textures_table, order_by="created_at", descending=False
                )
        except RemoteCallError as e:
            return ServiceResult.from_exception(e)

        colors = PartsColors.from_rows(color_rows)
        if not colors.is_empty():
            self.parts_colors = colors
            self._save_colors()

        if texture_rows:
            self.textures = [Texture(name=r["name"], id=r["id"]) for r in texture_rows]
            self._save_textures()

        return ServiceResult.ok({"colors": self.parts_colors, "textures": self.textures})

    # =========================================================================
    # COLOURS
    # =========================================================================

    async def add_color(self, part: str, name: str, hex_value: str) -> ServiceResult:
        if part not in PARTS:
            return ServiceResult.fail(f"Unknown part type: {part}", error_code="CATALOG_001")

        if self._remote is not None:
            return await self._remote_then_refresh(
                self._remote.insert(self._config.colors_table, {"part_type": part, "name": name, "hex": hex_value}),
                "add colour",
            )

        self.parts_colors.for_part(part).append(ColorOption(name=name, hex=hex_value, id=new_id()))
        self._save_colors()
        return ServiceResult.ok(self.parts_colors)

    async def delete_color(self, part: str, color: ColorOption) -> ServiceResult:
        if part not in PARTS:
            return ServiceResult.fail(f"Unknown part type: {part}", error_code="CATALOG_001")

        if self._remote is not None and color.id:
            return await self._remote_then_refresh(
                self._remote.delete(self._config.colors_table, color.id), "delete colour"
            )

        colors = self.parts_colors.for_part(part)
        colors[:] = [c for c in colors if c != color]
        self._save_colors()
        return ServiceResult.ok(self.parts_colors)

    # =========================================================================
    # TEXTURES
    # =========================================================================

    async def add_texture(self, name: str) -> ServiceResult:
        name = name.strip()
        if not name:
            return ServiceResult.fail("Texture name is required", error_code="CATALOG_002")

        if self._remote is not None:
            return await self._remote_then_refresh(
                self._remote.insert(self._config.textures_table, {"name": name}), "add texture"
            )

        self.textures.append(Texture(name=name))
        self._save_textures()
        return ServiceResult.ok(self.textures)

    async def delete_texture(self, texture: Texture) -> ServiceResult:
        if self._remote is not None:
            return await self._remote_then_refresh(
                self._remote.delete(self._config.textures_table, texture.id), "delete texture"
            )

        self.textures = [t for t in self.textures if t.id != texture.id]
        self._save_textures()
        return ServiceResult.ok(self.textures)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _remote_then_refresh(self, call: Any, operation: str) -> ServiceResult:
        try:
            await call
        except RemoteCallError as e:
            self.logger.error(f"Failed to {operation}: {e}")
            return ServiceResult.from_exception(e)
        return await self.refresh_from_remote()

    def _save_colors(self) -> None:
        self._local.set(self._config.storage_keys.parts_colors, json.dumps(self.parts_colors.to_record()))

    def _save_textures(self) -> None:
        self._local.set(
            self._config.storage_keys.textures,
            json.dumps([t.to_record() for t in self.textures]),
        )
