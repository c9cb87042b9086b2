"""OBJ/MTL exporter for DXM models."""
import logging
from pathlib import Path
from typing import List, Optional, Union

from .dxm_optimizer import with_pools
from .dxm_types import DXMGroup, DXMModel
from .export_files import (
    ExportResult,
    copy_textures,
    create_output_directory,
    write_text,
)

logger = logging.getLogger(__name__)

NULL_MATERIAL = "null"


def face_corner(v: int, t: Optional[int], n: Optional[int]) -> str:
    """One 1-based face corner in position/uv/normal order."""
    if t is not None and n is not None:
        return f"{v + 1}/{t + 1}/{n + 1}"
    if n is not None:
        return f"{v + 1}//{n + 1}"
    if t is not None:
        return f"{v + 1}/{t + 1}"
    return f"{v + 1}"


def default_destination(model: DXMModel) -> Path:
    """Folder of the source file, or the working directory."""
    if model.source_path is not None:
        return model.source_path.parent
    return Path(".")


class OBJExporter:
    """Exports DXM model data to OBJ/MTL files."""

    def __init__(self, model: DXMModel):
        """Initialize exporter with a loaded model.

        Args:
            model: Decoded model, optimized or not. Unoptimized models are
                exported through identity pools without being modified.
        """
        self.model = with_pools(model)

    def _group_faces(self, group: DXMGroup) -> List[str]:
        if not group.vi:
            return []

        count = len(group.vi) - len(group.vi) % 3
        if count != len(group.vi):
            logger.debug("Ignoring %d trailing corners", len(group.vi) - count)

        lines = []
        for i in range(0, count, 3):
            corners = [
                face_corner(
                    group.vi[c],
                    group.ti[c] if group.ti is not None else None,
                    group.ni[c] if group.ni is not None else None,
                )
                for c in range(i, i + 3)
            ]
            lines.append("f " + " ".join(corners))
        return lines

    def build_obj(self, mtl_name: str) -> str:
        """Build the .obj text."""
        model = self.model
        source = model.source_path.name if model.source_path else model.name
        lines = [
            "# DXM Converter OBJ export",
            f"# Source: {source}",
            f"# Vertices: {len(model.v)}",
            f"# Normals: {len(model.vn) if model.vn is not None else 0}",
            f"# UVs: {len(model.vt) if model.vt is not None else 0}",
            f"# Groups: {len(model.groups)}",
            "",
            f"mtllib {mtl_name}",
            f"o {model.name}",
        ]

        lines.extend(f"v {v}" for v in model.v)
        if model.vn is not None:
            lines.extend(f"vn {vn}" for vn in model.vn)
        if model.vt is not None:
            lines.extend(f"vt {vt}" for vt in model.vt)

        for group in model.groups:
            lines.append(f"usemtl {group.material_name or NULL_MATERIAL}")
            lines.extend(self._group_faces(group))

        return "\n".join(lines) + "\n"

    def build_mtl(self) -> str:
        """Build the .mtl text, one material per distinct texture."""
        source = self.model.source_path.name if self.model.source_path else self.model.name
        lines = [
            "# DXM Converter material library",
            f"# Source: {source}",
        ]

        seen = set()
        for group in self.model.groups:
            name = group.material_name
            if not name or name in seen:
                continue
            seen.add(name)
            lines.extend(["", f"newmtl {name}", f"map_Kd {name}"])

        return "\n".join(lines) + "\n"

    def export(self, destination: Optional[Union[str, Path]] = None) -> ExportResult:
        """Write <name>/<name>.obj and <name>/<name>.mtl plus textures.

        Args:
            destination: Folder to create the output folder in. Defaults
                to the folder of the source file.

        Raises:
            OutputWriteFailure: If the folder or a file cannot be written
        """
        logger.info("## Exporting OBJ ##")
        parent = Path(destination) if destination is not None else default_destination(self.model)
        name = self.model.name

        directory = create_output_directory(parent, name)
        result = ExportResult(directory=directory)

        obj_path = directory / f"{name}.obj"
        mtl_path = directory / f"{name}.mtl"

        write_text(obj_path, self.build_obj(mtl_path.name))
        result.files.append(obj_path)
        write_text(mtl_path, self.build_mtl())
        result.files.append(mtl_path)

        copy_textures(self.model, directory, result)
        return result
