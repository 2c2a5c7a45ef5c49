"""
Catalog nodes handed to the host, and the ArcGIS descriptors they are built from.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

SERVICE_TYPES = ("FeatureServer", "MapServer")
SUPPORTED_LAYER_TYPES = ("Feature Layer", "Annotation Layer")
GROUP_LAYER = "Group Layer"
TOP_LEVEL_PARENT_ID = -1


# --------------------------------------------------------------------------------------
# Catalog nodes
# --------------------------------------------------------------------------------------

@dataclass
class Folder:
    """Navigable node; ``id`` is the URL to list next."""
    id: str
    title: str
    type: str = field(default="folder", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "type": self.type}


@dataclass
class Resource:
    """Downloadable layer; ``file_path`` stays empty until materialized."""
    id: str
    title: str
    origin: str
    format: str = "geojson"
    file_path: str = ""
    description: Optional[str] = None
    type: str = field(default="resource", init=False)

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "origin": self.origin,
            "format": self.format,
            "filePath": self.file_path,
        }
        if self.description is not None:
            out["description"] = self.description
        return out


CatalogNode = Union[Folder, Resource]


@dataclass
class ListResult:
    results: List[CatalogNode]
    path: List[Folder]

    @property
    def count(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [node.to_dict() for node in self.results],
            "count": self.count,
            "path": [folder.to_dict() for folder in self.path],
        }


# --------------------------------------------------------------------------------------
# Upstream descriptors
# --------------------------------------------------------------------------------------

@dataclass
class ServiceDescriptor:
    name: str
    type: str
    url: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ServiceDescriptor":
        return cls(name=str(data.get("name", "")), type=str(data.get("type", "")), url=data.get("url"))


@dataclass
class LayerDescriptor:
    id: Any
    name: str
    type: Optional[str]
    parent_layer_id: Any = TOP_LEVEL_PARENT_ID

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "LayerDescriptor":
        parent = data.get("parentLayerId")
        return cls(
            id=data.get("id"),
            name=str(data.get("name", "")),
            type=data.get("type"),
            parent_layer_id=TOP_LEVEL_PARENT_ID if parent is None else parent,
        )

    @property
    def is_top_level(self) -> bool:
        return self.parent_layer_id == TOP_LEVEL_PARENT_ID


@dataclass
class SubLayerDescriptor:
    id: Any
    name: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SubLayerDescriptor":
        return cls(id=data.get("id"), name=str(data.get("name", "")))


def _list_of(data: Dict[str, Any], key: str) -> list:
    value = data.get(key)
    return value if isinstance(value, list) else []


@dataclass
class NodeDescriptor:
    """
    One ArcGIS REST node (services directory, folder, service or layer).

    The upstream shape is decided by which keys are present: a directory lists
    ``folders`` and ``services``; a service or layer lists ``layers`` and/or
    ``subLayers``. Missing keys are empty lists.
    """
    folders: List[str] = field(default_factory=list)
    services: List[ServiceDescriptor] = field(default_factory=list)
    layers: List[LayerDescriptor] = field(default_factory=list)
    sub_layers: List[SubLayerDescriptor] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any, url: str = "") -> "NodeDescriptor":
        if not isinstance(data, dict):
            raise ValueError(f"Malformed ArcGIS descriptor at {url}: expected a JSON object")
        return cls(
            folders=[str(f) for f in _list_of(data, "folders")],
            services=[ServiceDescriptor.from_json(s) for s in _list_of(data, "services") if isinstance(s, dict)],
            layers=[LayerDescriptor.from_json(layer) for layer in _list_of(data, "layers") if isinstance(layer, dict)],
            sub_layers=[SubLayerDescriptor.from_json(s) for s in _list_of(data, "subLayers") if isinstance(s, dict)],
        )


@dataclass
class LayerMetadata:
    """``<layer url>?f=json`` as far as the extractor needs it."""
    id: Any
    name: str
    type: Optional[str]
    description: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any, url: str = "") -> "LayerMetadata":
        if not isinstance(data, dict):
            raise ValueError(f"Malformed layer metadata at {url}: expected a JSON object")
        return cls(
            id=data.get("id"),
            name=str(data.get("name", "")),
            type=data.get("type"),
            description=data.get("description"),
        )
