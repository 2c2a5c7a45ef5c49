"""
Catalog tree resolver for ArcGIS REST services directories.

Maps one node of the folder/service/layer hierarchy to a flat list of
Folder and Resource children plus the breadcrumb path back to the root.
"""

import logging
from typing import List, Optional

from .fetch_cache import FetchCache
from .models import (
    GROUP_LAYER,
    SERVICE_TYPES,
    SUPPORTED_LAYER_TYPES,
    CatalogNode,
    Folder,
    ListResult,
    NodeDescriptor,
    Resource,
    ServiceDescriptor,
)

log = logging.getLogger(__name__)


def join_url(base: str, name: str) -> str:
    """``base + name`` with exactly one slash between them."""
    return base + name if base.endswith("/") else f"{base}/{name}"


def _layer_title(name: str, layer_id) -> str:
    return f"{name} - {layer_id}"


def list_catalog(cache: FetchCache, base_url: str, current_folder_id: Optional[str] = None) -> ListResult:
    """List the children of ``current_folder_id`` (or the root) and its breadcrumb."""
    url = current_folder_id or base_url
    log.info("[CATALOG] Listing %s", url)

    node = NodeDescriptor.from_json(cache.fetch(url), url)
    results: List[CatalogNode] = []

    for folder in node.folders:
        results.append(Folder(id=f"{url}/{folder}", title=folder))

    for service in node.services:
        if service.type not in SERVICE_TYPES:
            log.debug("[CATALOG] Skipping %s service %s", service.type, service.name)
            continue
        service_url = service.url or join_url(base_url, f"{service.name}/{service.type}")
        results.append(Folder(id=service_url, title=f"{service.name} ({service.type})"))

    for layer in node.layers:
        layer_url = f"{url}/{layer.id}"
        if layer.type == GROUP_LAYER:
            results.append(Folder(id=layer_url, title=_layer_title(layer.name, layer.id)))
        elif layer.type in SUPPORTED_LAYER_TYPES and layer.is_top_level:
            results.append(Resource(id=layer_url, title=_layer_title(layer.name, layer.id), origin=layer_url))
        else:
            log.debug("[CATALOG] Skipping layer %s (%s, parent %s)", layer.id, layer.type, layer.parent_layer_id)

    # Sub-layers are siblings of the current layer.
    parent_url = url[:url.rfind("/") + 1]
    for sub_layer in node.sub_layers:
        sub_url = f"{parent_url}{sub_layer.id}"
        results.append(Resource(id=sub_url, title=_layer_title(sub_layer.name, sub_layer.id), origin=sub_url))

    path = build_path(base_url, url)
    log.info("[CATALOG] %s: %d entries, depth %d", url, len(results), len(path))
    return ListResult(results=results, path=path)


def build_path(base_url: str, url: str) -> List[Folder]:
    """
    Breadcrumb from the catalog root to ``url``.

    Each ``/``-separated segment after ``base_url`` becomes a Folder whose id is
    ``url`` cut right after that segment. A ``FeatureServer``/``MapServer``
    segment is folded into the entry before it so that ``Name/FeatureServer``
    yields a single entry.
    """
    if not url.startswith(base_url):
        log.debug("[CATALOG] %s is outside %s, no breadcrumb", url, base_url)
        return []

    path: List[Folder] = []
    position = len(base_url)
    for segment in url[len(base_url):].split("/"):
        end = position + len(segment)
        if segment in SERVICE_TYPES:
            if path:
                path[-1].id += f"/{segment}"
        elif segment:
            path.append(Folder(id=url[:end], title=segment))
        position = end + 1
    return path


def list_services(cache: FetchCache, base_url: str) -> List[ServiceDescriptor]:
    """Every service of the directory, root first, then folders depth first."""
    root = NodeDescriptor.from_json(cache.fetch(base_url), base_url)
    services = list(root.services)
    for folder in root.folders:
        services.extend(_list_services_in_folder(cache, base_url, folder))
    log.info("[CATALOG] Found %d services under %s", len(services), base_url)
    return services


def _list_services_in_folder(cache: FetchCache, base_url: str, folder: str) -> List[ServiceDescriptor]:
    folder_url = join_url(base_url, folder)
    node = NodeDescriptor.from_json(cache.fetch(folder_url), folder_url)
    services = list(node.services)
    for sub_folder in node.folders:
        services.extend(_list_services_in_folder(cache, base_url, f"{folder}/{sub_folder}"))
    return services
