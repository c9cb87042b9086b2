"""Output folder and texture handling shared by the OBJ and glTF exporters."""
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .dxm_types import DXMModel
from .errors import OutputWriteFailure, TextureCopyFailure

logger = logging.getLogger(__name__)

# (source folder, texture file name) -> path of the texture, or None
TextureResolver = Callable[[Path, str], Optional[Path]]


def folder_resolver(*subfolders: str) -> TextureResolver:
    """Resolver looking for the texture in a folder below the source folder."""
    def resolve(source_folder: Path, name: str) -> Optional[Path]:
        candidate = source_folder.joinpath(*subfolders, name)
        return candidate if candidate.is_file() else None

    return resolve


DEFAULT_RESOLVERS: Sequence[TextureResolver] = (
    folder_resolver(),
    folder_resolver("Textures"),
)


def resolve_texture(
    source_folder: Path,
    name: str,
    resolvers: Sequence[TextureResolver] = DEFAULT_RESOLVERS,
) -> Optional[Path]:
    """Return the first resolver hit, or None when the texture is unresolved."""
    for resolver in resolvers:
        path = resolver(source_folder, name)
        if path is not None:
            return path
    return None


@dataclass
class ExportResult:
    """What an export wrote."""

    directory: Path
    files: List[Path] = field(default_factory=list)
    copied_textures: List[Path] = field(default_factory=list)
    missing_textures: List[str] = field(default_factory=list)
    failed_textures: List[TextureCopyFailure] = field(default_factory=list)


def unique_directory(parent: Path, name: str) -> Path:
    """First of ``name``, ``name (1)``, ``name (2)``... not present in parent."""
    candidate = parent / name
    suffix = 1
    while candidate.exists():
        candidate = parent / f"{name} ({suffix})"
        suffix += 1
    return candidate


def create_output_directory(parent: Path, name: str) -> Path:
    """Create a fresh output directory.

    Raises:
        OutputWriteFailure: If the directory cannot be created
    """
    directory = unique_directory(parent, name)
    try:
        directory.mkdir(parents=True)
    except OSError as e:
        raise OutputWriteFailure(directory, e) from e
    logger.info("Output folder: %s", directory)
    return directory


def write_text(path: Path, text: str):
    """Write a fully built text buffer in one go.

    Raises:
        OutputWriteFailure: On any I/O error
    """
    try:
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
    except OSError as e:
        raise OutputWriteFailure(path, e) from e


def copy_textures(
    model: DXMModel,
    directory: Path,
    result: ExportResult,
    resolvers: Sequence[TextureResolver] = DEFAULT_RESOLVERS,
):
    """Copy every texture the model's groups reference into directory.

    Textures that cannot be found or copied are recorded on result and
    logged; they never stop the export.
    """
    if model.source_path is None:
        logger.debug("Model has no source path, skipping texture search")
        return

    source_folder = model.source_path.parent
    seen = set()
    for group in model.groups:
        name = group.material_name
        if not name or name in seen:
            continue
        seen.add(name)

        path = resolve_texture(source_folder, name, resolvers)
        if path is None:
            logger.warning("Texture not found: %s", name)
            result.missing_textures.append(name)
            continue

        target = directory / path.name
        try:
            shutil.copyfile(path, target)
        except OSError as e:
            failure = TextureCopyFailure(name, path, e)
            logger.warning("%s", failure)
            result.failed_textures.append(failure)
            continue

        logger.debug("Copied texture %s -> %s", path, target)
        result.copied_textures.append(target)
