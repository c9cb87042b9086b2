"""DXM/DLM to OBJ/MTL Converter Package."""
from pathlib import Path
from typing import Optional, Union

from .dxm_optimizer import format_component, optimize
from .dxm_parser import DXMParser, load_model, resolve_source_path
from .dxm_transform import ExportPose, apply_pose
from .dxm_types import DXMGroup, DXMHeader, DXMModel, U16Indices, U32Indices
from .errors import (
    DXMError,
    InconsistentModel,
    MissingSourceFile,
    OutdatedFormatVersion,
    OutputWriteFailure,
    TextureCopyFailure,
    TruncatedInput,
    UnsupportedCompression,
    UnsupportedEncoding,
    UnsupportedFormat,
    UnsupportedVertexLayout,
)
from .export_files import ExportResult
from .gltf_exporter import GLTFExporter
from .obj_exporter import OBJExporter

EXPORTERS = {
    "obj": OBJExporter,
    "glb": GLTFExporter,
}


def export(
    model: DXMModel,
    destination: Optional[Union[str, Path]] = None,
    fmt: str = "obj",
    pose: Optional[ExportPose] = None,
) -> ExportResult:
    """Export a model into a new folder under destination.

    Args:
        model: Loaded model, usually optimized first
        destination: Parent folder, defaults to the source file's folder
        fmt: "obj" or "glb"
        pose: Optional rotation/mirroring, applied to a copy of the model
    """
    if fmt not in EXPORTERS:
        raise ValueError(f"Unknown export format: {fmt}")
    if pose is not None:
        model = apply_pose(model, pose)
    return EXPORTERS[fmt](model).export(destination)


__all__ = [
    "DXMError",
    "DXMGroup",
    "DXMHeader",
    "DXMModel",
    "DXMParser",
    "ExportPose",
    "ExportResult",
    "GLTFExporter",
    "InconsistentModel",
    "MissingSourceFile",
    "OBJExporter",
    "OutdatedFormatVersion",
    "OutputWriteFailure",
    "TextureCopyFailure",
    "TruncatedInput",
    "U16Indices",
    "U32Indices",
    "UnsupportedCompression",
    "UnsupportedEncoding",
    "UnsupportedFormat",
    "UnsupportedVertexLayout",
    "apply_pose",
    "export",
    "format_component",
    "load_model",
    "optimize",
    "resolve_source_path",
]
