"""Registry artifact schema definitions using Pydantic.

This module defines the documents the builder writes to the registry
directory: index.json, categories.json and one version file per module.
"""

from pydantic import BaseModel, Field

from profile_registry.module_schema import Dependencies

# Schema version - update when the registry artifact layout changes
REGISTRY_SCHEMA_VERSION = "1.0.0"

MODULE_MIME_TYPE = "application/json"


class ModuleMetadata(BaseModel):
    """Entry for a module in the registry index."""

    latest: str = Field(description="Latest published version")
    versions: list[str] = Field(description="All published versions")
    category: str
    description: str
    url: str = Field(description="Module document path relative to base_url")
    checksum: str = Field(description="sha256:<hex> digest of the module document")
    size: int = Field(description="Module document size in bytes")
    author: str | None = None
    license: str | None = None
    tags: list[str] = Field(default_factory=list)


class Statistics(BaseModel):
    """Summary counters for the registry index."""

    total_modules: int
    total_downloads: int = 0
    categories_count: dict[str, int] = Field(default_factory=dict)


class RegistryIndex(BaseModel):
    """Root schema for index.json."""

    version: str = REGISTRY_SCHEMA_VERSION
    last_updated: str = Field(description="Build time, UTC RFC 3339")
    base_url: str
    categories: list[str] = Field(default_factory=list)
    modules: dict[str, ModuleMetadata] = Field(default_factory=dict)
    statistics: Statistics


class CategoryDefinition(BaseModel):
    """A category and the modules currently in it."""

    name: str
    description: str
    icon: str
    color: str
    priority: int
    modules: list[str] = Field(default_factory=list)


class CategoryMetadata(BaseModel):
    """Summary counters for categories.json."""

    total_categories: int
    active_categories: int
    last_updated: str


class Categories(BaseModel):
    """Root schema for categories.json."""

    version: str = REGISTRY_SCHEMA_VERSION
    categories: dict[str, CategoryDefinition]
    metadata: CategoryMetadata


class ChangelogEntry(BaseModel):
    """One changelog line."""

    type: str
    description: str


class Compatibility(BaseModel):
    """Platforms and shells a module version supports."""

    platforms: list[str] = Field(default_factory=list)
    shells: list[str] = Field(default_factory=list)


class FileInfo(BaseModel):
    """Where to fetch a module version and how to verify it."""

    url: str
    checksum: str
    size: int
    mime_type: str = MODULE_MIME_TYPE


class VersionMetadata(BaseModel):
    """Root schema for versions/<category>/<module>-v<version>.json."""

    module: str
    version: str
    release_date: str = Field(description="Same as generated_at; kept for existing readers")
    generated_at: str = Field(description="Build time, not an authored release date")
    category: str
    changelog: list[ChangelogEntry]
    breaking_changes: list[str] = Field(default_factory=list)
    dependencies: Dependencies | None = None
    compatibility: Compatibility
    file_info: FileInfo
    author: str | None = None
    license: str | None = None
    tags: list[str] = Field(default_factory=list)
