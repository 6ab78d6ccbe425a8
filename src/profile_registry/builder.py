"""Registry builder.

Scans the module directory and regenerates the registry artifacts:

    registry/
      index.json
      categories.json
      versions/<category>/<module>-v<version>.json

Every build is a full scan and a full regeneration. Stages run in a fixed
order (scan, index, categories, versions) and the first failure aborts the
build. With ``atomic`` enabled the artifacts are staged inside the registry
directory and moved into place only once every stage has succeeded.
"""

import hashlib
import json
import os
import shutil
import tempfile
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel

from profile_registry.categories import CATEGORY_CATALOG, CategoryInfo
from profile_registry.config import DuplicatePolicy, RegistryConfig
from profile_registry.module_schema import (
    MODULE_FILE_SUFFIX,
    Module,
    ModuleLoadError,
    is_module_file,
    load_module,
)
from profile_registry.registry_schema import (
    MODULE_MIME_TYPE,
    REGISTRY_SCHEMA_VERSION,
    Categories,
    CategoryDefinition,
    CategoryMetadata,
    ChangelogEntry,
    Compatibility,
    FileInfo,
    ModuleMetadata,
    RegistryIndex,
    Statistics,
    VersionMetadata,
)

INDEX_FILE = "index.json"
CATEGORIES_FILE = "categories.json"
VERSIONS_DIR = "versions"

# Publication order; index.json goes last
PUBLISHED_NAMES = (VERSIONS_DIR, CATEGORIES_FILE, INDEX_FILE)
PREVIOUS_DIR = "previous"

# Module URLs in the index are relative to base_url
MODULE_URL_PREFIX = "modules/"

DIR_MODE = 0o755

ProgressCallback = Callable[[str], None]


class RegistryBuildError(Exception):
    """Raised when a build stage fails."""


class ModulesDirectoryNotFoundError(RegistryBuildError):
    """Raised when the module source directory does not exist."""

    def __init__(self, path: Path) -> None:
        """Initialize with the missing directory."""
        self.path = path
        super().__init__(f"Modules directory not found: {path}")


class DuplicateModuleError(RegistryBuildError):
    """Raised when two files resolve to the same module name and duplicates are errors."""

    def __init__(self, name: str, first: Path, second: Path) -> None:
        """Initialize with the colliding name and both files."""
        self.name = name
        self.first = first
        self.second = second
        super().__init__(f"Module '{name}' is defined by both {first} and {second}")


class RegistryPublishError(RegistryBuildError):
    """Raised when staged artifacts cannot be moved into the registry directory."""

    def __init__(self, registry_dir: Path, cause: OSError, *, restored: bool) -> None:
        """Initialize with the registry directory, the failed move and the rollback outcome."""
        self.registry_dir = registry_dir
        self.restored = restored
        message = f"publishing registry to {registry_dir}: {cause}"
        if not restored:
            message += " (previous registry could not be restored; see the .staging-* directory)"
        super().__init__(message)


@dataclass
class LoadedModule:
    """A parsed module together with the file it came from."""

    module: Module
    source_path: Path


@dataclass
class DuplicateModule:
    """A name collision resolved by last-write-wins."""

    name: str
    kept: Path
    replaced: Path


@dataclass
class ScanResult:
    """Modules found by a scan, keyed by name."""

    modules: dict[str, LoadedModule]
    duplicates: list[DuplicateModule] = field(default_factory=list)


@dataclass
class BuildResult:
    """Outcome of a successful build."""

    module_count: int
    generated_at: str
    written: list[Path] = field(default_factory=list)
    duplicates: list[DuplicateModule] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as a UTC RFC 3339 timestamp with second precision."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def compute_checksum(path: Path) -> tuple[str, int]:
    """Return the ``sha256:<hex>`` digest and byte size of a file."""
    data = path.read_bytes()
    return f"sha256:{hashlib.sha256(data).hexdigest()}", len(data)


def derive_tags(module: Module) -> list[str]:
    """Collect discovery tags for a module.

    Tags are the category, the name, every platform, every shell and every
    required command, deduplicated and sorted.
    """
    tags: set[str] = {module.name}
    if module.category:
        tags.add(module.category)
    tags.update(module.platforms)
    tags.update(module.shells)
    if module.dependencies is not None and module.dependencies.commands:
        tags.update(module.dependencies.commands)
    return sorted(tags)


def module_relative_path(module: Module) -> str:
    """Path of a module document relative to the modules directory."""
    if module.category:
        return f"{module.category}/{module.name}{MODULE_FILE_SUFFIX}"
    return f"{module.name}{MODULE_FILE_SUFFIX}"


def module_url(module: Module) -> str:
    """URL of a module document relative to the registry base URL."""
    return MODULE_URL_PREFIX + module_relative_path(module)


def version_file_name(module: Module) -> str:
    """File name of a module's version metadata document."""
    return f"{module.name}-v{module.version}.json"


def compose_index(
    modules: Mapping[str, LoadedModule], base_url: str, generated_at: str
) -> RegistryIndex:
    """Build the registry index for a set of modules."""
    entries: dict[str, ModuleMetadata] = {}
    categories_count: dict[str, int] = {}

    for name in sorted(modules):
        loaded = modules[name]
        module = loaded.module
        checksum, size = compute_checksum(loaded.source_path)

        entries[name] = ModuleMetadata(
            latest=module.version,
            versions=[module.version],
            category=module.category,
            description=module.description,
            url=module_url(module),
            checksum=checksum,
            size=size,
            author=module.author,
            license=module.license,
            tags=derive_tags(module),
        )

        if module.category:
            categories_count[module.category] = categories_count.get(module.category, 0) + 1

    return RegistryIndex(
        version=REGISTRY_SCHEMA_VERSION,
        last_updated=generated_at,
        base_url=base_url,
        categories=sorted(categories_count),
        modules=entries,
        statistics=Statistics(
            total_modules=len(modules),
            total_downloads=0,
            categories_count=dict(sorted(categories_count.items())),
        ),
    )


def compose_categories(
    modules: Mapping[str, LoadedModule],
    generated_at: str,
    catalog: Mapping[str, CategoryInfo] = CATEGORY_CATALOG,
) -> Categories:
    """Build category definitions with their member modules.

    Modules whose category is not in the catalog are left out.
    """
    members: dict[str, list[str]] = {key: [] for key in catalog}
    for loaded in modules.values():
        category = loaded.module.category
        if category in members:
            members[category].append(loaded.module.name)

    definitions = {
        key: CategoryDefinition(
            name=catalog[key].name,
            description=catalog[key].description,
            icon=catalog[key].icon,
            color=catalog[key].color,
            priority=catalog[key].priority,
            modules=sorted(members[key]),
        )
        for key in sorted(catalog)
    }

    return Categories(
        version=REGISTRY_SCHEMA_VERSION,
        categories=definitions,
        metadata=CategoryMetadata(
            total_categories=len(definitions),
            active_categories=sum(1 for d in definitions.values() if d.modules),
            last_updated=generated_at,
        ),
    )


def compose_version(loaded: LoadedModule, generated_at: str) -> VersionMetadata:
    """Build the version metadata document for one module.

    There is no tracked release history, so the changelog is a single
    "added" entry and the release date is the build time.
    """
    module = loaded.module
    checksum, size = compute_checksum(loaded.source_path)

    return VersionMetadata(
        module=module.name,
        version=module.version,
        release_date=generated_at,
        generated_at=generated_at,
        category=module.category,
        changelog=[ChangelogEntry(type="added", description=f"Initial {module.name} module")],
        breaking_changes=[],
        dependencies=module.dependencies,
        compatibility=Compatibility(platforms=module.platforms, shells=module.shells),
        file_info=FileInfo(
            url=module_url(module),
            checksum=checksum,
            size=size,
            mime_type=MODULE_MIME_TYPE,
        ),
        author=module.author,
        license=module.license,
        tags=derive_tags(module),
    )


def write_json(path: Path, document: BaseModel) -> Path:
    """Write a document as 2-space indented JSON, creating parent directories.

    The document is serialized and encoded before the file is opened, so an
    encoding failure leaves an existing file untouched.

    Raises:
        OSError: If the file cannot be written.
        ValueError: If the document cannot be serialized as UTF-8 JSON.
    """
    payload = document.model_dump(mode="json", exclude_none=True)
    data = (json.dumps(payload, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
    path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


class RegistryBuilder:
    """Builds the registry artifacts for one configuration."""

    def __init__(
        self,
        config: RegistryConfig,
        *,
        now: Callable[[], datetime] = _utcnow,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self._now = now
        self._on_progress = on_progress

    def _progress(self, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(message)

    def scan_modules(self) -> ScanResult:
        """Load every module document under the modules directory.

        Files are visited in lexical path order, so with the overwrite
        policy the lexically last file wins a name collision.

        Raises:
            ModulesDirectoryNotFoundError: If the modules directory is missing.
            ModuleLoadError: If any module file fails to load.
            DuplicateModuleError: On a name collision under the error policy.
        """
        modules_dir = self.config.modules_dir
        if not modules_dir.is_dir():
            raise ModulesDirectoryNotFoundError(modules_dir)

        paths = sorted(
            (p for p in modules_dir.rglob(f"*{MODULE_FILE_SUFFIX}") if is_module_file(p)),
            key=lambda p: p.relative_to(modules_dir).parts,
        )

        result = ScanResult(modules={})
        for path in paths:
            module = load_module(path)
            previous = result.modules.get(module.name)
            if previous is not None:
                if self.config.on_duplicate == DuplicatePolicy.ERROR:
                    raise DuplicateModuleError(module.name, previous.source_path, path)
                result.duplicates.append(
                    DuplicateModule(name=module.name, kept=path, replaced=previous.source_path)
                )
            result.modules[module.name] = LoadedModule(module=module, source_path=path)

        return result

    def generate_index(
        self, modules: Mapping[str, LoadedModule], output_dir: Path, generated_at: str
    ) -> Path:
        """Write index.json into output_dir."""
        index = compose_index(modules, self.config.base_url, generated_at)
        return write_json(output_dir / INDEX_FILE, index)

    def generate_categories(
        self,
        modules: Mapping[str, LoadedModule],
        output_dir: Path,
        generated_at: str,
        catalog: Mapping[str, CategoryInfo] = CATEGORY_CATALOG,
    ) -> Path:
        """Write categories.json into output_dir."""
        categories = compose_categories(modules, generated_at, catalog)
        return write_json(output_dir / CATEGORIES_FILE, categories)

    def generate_versions(
        self, modules: Mapping[str, LoadedModule], output_dir: Path, generated_at: str
    ) -> list[Path]:
        """Write one version metadata file per module under output_dir/versions."""
        versions_dir = output_dir / VERSIONS_DIR
        versions_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)

        written = []
        for name in sorted(modules):
            loaded = modules[name]
            category_dir = versions_dir / loaded.module.category
            target = category_dir / version_file_name(loaded.module)
            written.append(write_json(target, compose_version(loaded, generated_at)))
        return written

    def build(self) -> BuildResult:
        """Run scan, index, categories and versions in order.

        Returns:
            BuildResult describing what was written.

        Raises:
            RegistryBuildError: If any stage fails. Nothing from later stages
                is attempted. Without ``atomic``, artifacts from earlier
                stages of the same build may already be on disk.
        """
        generated_at = format_timestamp(self._now())

        self._progress("Scanning modules directory...")
        try:
            scan = self.scan_modules()
        except (ModuleLoadError, OSError) as e:
            raise RegistryBuildError(f"scanning modules: {e}") from e
        self._progress(f"Found {len(scan.modules)} modules")

        registry_dir = self.config.registry_dir
        try:
            registry_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise RegistryBuildError(f"creating registry directory {registry_dir}: {e}") from e

        if not self.config.atomic:
            written = self._generate_all(scan.modules, registry_dir, generated_at)
        else:
            staging_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=registry_dir))
            keep_staging = False
            try:
                self._generate_all(scan.modules, staging_dir, generated_at)
                written = self._swap_into_place(staging_dir, registry_dir)
            except RegistryPublishError as e:
                # The previous registry may only survive inside staging
                keep_staging = not e.restored
                raise
            finally:
                if not keep_staging:
                    shutil.rmtree(staging_dir, ignore_errors=True)

        return BuildResult(
            module_count=len(scan.modules),
            generated_at=generated_at,
            written=written,
            duplicates=scan.duplicates,
        )

    def _generate_all(
        self, modules: Mapping[str, LoadedModule], output_dir: Path, generated_at: str
    ) -> list[Path]:
        written: list[Path] = []

        self._progress("Generating registry index...")
        try:
            written.append(self.generate_index(modules, output_dir, generated_at))
        except (OSError, ValueError) as e:
            raise RegistryBuildError(f"generating index: {e}") from e

        self._progress("Generating category definitions...")
        try:
            written.append(self.generate_categories(modules, output_dir, generated_at))
        except (OSError, ValueError) as e:
            raise RegistryBuildError(f"generating categories: {e}") from e

        self._progress("Generating version metadata...")
        try:
            written.extend(self.generate_versions(modules, output_dir, generated_at))
        except (OSError, ValueError) as e:
            raise RegistryBuildError(f"generating versions: {e}") from e

        return written

    def _swap_into_place(self, staging_dir: Path, registry_dir: Path) -> list[Path]:
        """Move staged artifacts over the live ones.

        The live versions/, categories.json and index.json are first moved
        aside into the staging directory, then the new artifacts are moved
        in. If any move fails, every completed move is undone so the
        previous registry is back in place before the error is raised.

        The whole versions/ tree is replaced, so version files of modules
        that no longer exist disappear. Other files in the registry
        directory (such as patterns.json) are left alone.

        Raises:
            RegistryPublishError: If a move fails. ``restored`` tells whether
                the previous registry could be put back.
        """
        previous_dir = staging_dir / PREVIOUS_DIR
        moves: list[tuple[Path, Path]] = []

        try:
            previous_dir.mkdir(mode=DIR_MODE)
            for name in PUBLISHED_NAMES:
                live = registry_dir / name
                if live.exists():
                    os.replace(live, previous_dir / name)
                    moves.append((live, previous_dir / name))
            for name in PUBLISHED_NAMES:
                os.replace(staging_dir / name, registry_dir / name)
                moves.append((staging_dir / name, registry_dir / name))
        except OSError as e:
            restored = _undo_moves(moves)
            raise RegistryPublishError(registry_dir, e, restored=restored) from e

        live_versions = registry_dir / VERSIONS_DIR
        written = [registry_dir / INDEX_FILE, registry_dir / CATEGORIES_FILE]
        written.extend(sorted(p for p in live_versions.rglob("*.json") if p.is_file()))
        return written


def _undo_moves(moves: list[tuple[Path, Path]]) -> bool:
    """Reverse completed moves, newest first. Returns False if any undo failed."""
    restored = True
    for source, target in reversed(moves):
        try:
            os.replace(target, source)
        except OSError:
            restored = False
    return restored
