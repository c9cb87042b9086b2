"""glTF exporter for DXM models."""
import logging
import struct
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pygltflib import (
    GLTF2,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Image,
    Material,
    Mesh,
    Node,
    PbrMetallicRoughness,
    Primitive,
    Sampler,
    Scene,
    Texture,
    TextureInfo,
)

from .dxm_optimizer import parse_key, with_pools
from .dxm_types import DXMGroup, DXMModel
from .export_files import ExportResult, copy_textures, create_output_directory
from .errors import OutputWriteFailure
from .obj_exporter import default_destination

logger = logging.getLogger(__name__)


class WeldedPrimitive:
    """One group turned into a single-index triangle list."""

    def __init__(self, group: DXMGroup):
        self.group = group
        self.corners: List[Tuple[int, Optional[int], Optional[int]]] = []
        self.indices: List[int] = []

    def weld(self):
        lookup: Dict[Tuple[int, Optional[int], Optional[int]], int] = {}
        group = self.group
        count = len(group.vi) - len(group.vi) % 3
        for c in range(count):
            corner = (
                group.vi[c],
                group.ti[c] if group.ti is not None else None,
                group.ni[c] if group.ni is not None else None,
            )
            index = lookup.get(corner)
            if index is None:
                index = len(self.corners)
                lookup[corner] = index
                self.corners.append(corner)
            self.indices.append(index)
        return self


class GLTFExporter:
    """Exports DXM model data to glTF/GLB format."""

    def __init__(self, model: DXMModel):
        """Initialize exporter with a loaded model.

        Args:
            model: Decoded model, optimized or not
        """
        self.model = with_pools(model)
        self._positions = [parse_key(v) for v in self.model.v]
        self._normals = [parse_key(n) for n in self.model.vn] if self.model.vn is not None else None
        self._uvs = [parse_key(t) for t in self.model.vt] if self.model.vt is not None else None

    def _compute_bounds(self, vertices: List[Tuple[float, ...]]) -> Tuple[List[float], List[float]]:
        """Compute min/max bounds for vertices."""
        if not vertices:
            return [0, 0, 0], [0, 0, 0]

        min_bounds = [float("inf")] * 3
        max_bounds = [float("-inf")] * 3

        for v in vertices:
            for i in range(3):
                min_bounds[i] = min(min_bounds[i], v[i])
                max_bounds[i] = max(max_bounds[i], v[i])

        return min_bounds, max_bounds

    def _add_view(self, gltf: GLTF2, buffer: bytearray, data: bytes, target: Optional[int] = None) -> int:
        """Append data to the buffer, 4-byte aligned, and return its view index."""
        if len(buffer) % 4:
            buffer.extend(b"\x00" * (4 - len(buffer) % 4))
        gltf.bufferViews.append(
            BufferView(
                buffer=0,
                byteOffset=len(buffer),
                byteLength=len(data),
                target=target,
            )
        )
        buffer.extend(data)
        return len(gltf.bufferViews) - 1

    def _add_accessor(self, gltf: GLTF2, view: int, component_type: int, count: int, kind: str,
                      min_bounds=None, max_bounds=None) -> int:
        gltf.accessors.append(
            Accessor(
                bufferView=view,
                componentType=component_type,
                count=count,
                type=kind,
                min=min_bounds,
                max=max_bounds,
            )
        )
        return len(gltf.accessors) - 1

    def _add_materials(self, gltf: GLTF2, copied: List[str]) -> Dict[str, int]:
        """One material per distinct texture name; only copied textures get an image."""
        materials: Dict[str, int] = {}
        for group in self.model.groups:
            name = group.material_name
            if not name or name in materials:
                continue

            pbr = PbrMetallicRoughness(metallicFactor=0.0)
            if name in copied:
                gltf.images.append(Image(uri=name))
                gltf.textures.append(Texture(sampler=0, source=len(gltf.images) - 1))
                pbr.baseColorTexture = TextureInfo(index=len(gltf.textures) - 1)

            gltf.materials.append(Material(name=name, pbrMetallicRoughness=pbr))
            materials[name] = len(gltf.materials) - 1

        if gltf.textures:
            gltf.samplers = [Sampler()]
        return materials

    def _add_primitive(self, gltf: GLTF2, buffer: bytearray, welded: WeldedPrimitive,
                       material: Optional[int]) -> Primitive:
        positions = [self._positions[v] for v, _, _ in welded.corners]
        min_bounds, max_bounds = self._compute_bounds(positions)

        position_data = b"".join(struct.pack("<fff", *p) for p in positions)
        view = self._add_view(gltf, buffer, position_data, 34962)  # ARRAY_BUFFER
        attributes = Attributes(
            POSITION=self._add_accessor(
                gltf, view, 5126, len(positions), "VEC3", min_bounds, max_bounds,  # FLOAT
            )
        )

        if self._normals is not None:
            normal_data = b"".join(struct.pack("<fff", *self._normals[n]) for _, _, n in welded.corners)
            view = self._add_view(gltf, buffer, normal_data, 34962)
            attributes.NORMAL = self._add_accessor(gltf, view, 5126, len(positions), "VEC3")

        if self._uvs is not None:
            # glTF puts the UV origin at the top left
            uv_data = b"".join(
                struct.pack("<ff", self._uvs[t][0], 1.0 - self._uvs[t][1]) for _, t, _ in welded.corners
            )
            view = self._add_view(gltf, buffer, uv_data, 34962)
            attributes.TEXCOORD_0 = self._add_accessor(gltf, view, 5126, len(positions), "VEC2")

        if len(welded.corners) <= 0xFFFF:
            index_data = struct.pack(f"<{len(welded.indices)}H", *welded.indices)
            component_type = 5123  # UNSIGNED_SHORT
        else:
            index_data = struct.pack(f"<{len(welded.indices)}I", *welded.indices)
            component_type = 5125  # UNSIGNED_INT
        view = self._add_view(gltf, buffer, index_data, 34963)  # ELEMENT_ARRAY_BUFFER
        indices = self._add_accessor(gltf, view, component_type, len(welded.indices), "SCALAR")

        return Primitive(
            attributes=attributes,
            indices=indices,
            material=material,
            mode=4,  # TRIANGLES
        )

    def _check_faces(self):
        if not any(len(group.vi or []) >= 3 for group in self.model.groups):
            raise ValueError("No mesh data found in DXM model")

    def build(self, copied_textures: Optional[List[str]] = None) -> Tuple[GLTF2, bytes]:
        """Build the glTF document and its binary buffer.

        Raises:
            ValueError: If no group has faces
        """
        self._check_faces()
        welded = [
            WeldedPrimitive(group).weld()
            for group in self.model.groups
            if len(group.vi or []) >= 3
        ]

        gltf = GLTF2()
        gltf.asset = Asset(version="2.0", generator="DXM Converter")

        materials = self._add_materials(gltf, copied_textures or [])

        buffer = bytearray()
        primitives = []
        for prim in welded:
            name = prim.group.material_name
            material = materials.get(name) if name else None
            primitives.append(self._add_primitive(gltf, buffer, prim, material))

        if len(buffer) % 4:
            buffer.extend(b"\x00" * (4 - len(buffer) % 4))

        gltf.buffers = [Buffer(byteLength=len(buffer))]
        gltf.meshes = [Mesh(name=self.model.name, primitives=primitives)]
        gltf.nodes = [Node(mesh=0, name=self.model.name)]
        gltf.scenes = [Scene(nodes=[0])]
        gltf.scene = 0

        return gltf, bytes(buffer)

    def export(self, destination: Optional[Union[str, Path]] = None) -> ExportResult:
        """Write <name>/<name>.glb plus textures.

        Raises:
            ValueError: If no group has faces
            OutputWriteFailure: If the folder or file cannot be written
        """
        logger.info("## Exporting GLB ##")
        # Fail before anything is created on disk
        self._check_faces()

        parent = Path(destination) if destination is not None else default_destination(self.model)
        name = self.model.name
        directory = create_output_directory(parent, name)
        result = ExportResult(directory=directory)

        copy_textures(self.model, directory, result)
        copied = [path.name for path in result.copied_textures]

        gltf, data = self.build(copied)
        gltf.set_binary_blob(data)

        output_path = directory / f"{name}.glb"
        try:
            gltf.save(str(output_path))
        except OSError as e:
            raise OutputWriteFailure(output_path, e) from e

        result.files.append(output_path)
        return result
