"""
ArcGIS layer downloader.

Reads a layer's metadata, pages through ``<layer>/query`` with resultOffset
until the server stops reporting ``exceededTransferLimit``, and writes one
GeoJSON FeatureCollection per layer.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from .fetch_cache import FetchCache
from .http_utils import FetchError, HttpClient
from .models import SUPPORTED_LAYER_TYPES, LayerMetadata, Resource

log = logging.getLogger(__name__)

# ArcGIS maxRecordCount defaults to 1000 on most servers
PAGE_SIZE = 1000


class UnsupportedResourceTypeError(Exception):
    """Raised when a layer is not a Feature Layer or Annotation Layer."""

    def __init__(self, layer_type):
        super().__init__(
            "ArcGIS resources must be of type 'Feature Layer' or 'Annotation Layer' "
            f"(received type: {layer_type})"
        )
        self.layer_type = layer_type


class DownloadError(Exception):
    """Raised when fetching or writing a layer fails."""
    pass


def sanitize_title(title: str) -> str:
    """Make a resource title usable as a file name."""
    return re.sub(r"[\s/\\]", "_", title)


def get_resource(
    cache: FetchCache,
    client: HttpClient,
    resource_url: str,
    destination_dir: Union[str, Path],
) -> Resource:
    """Fetch metadata for ``resource_url`` and download it to ``destination_dir``."""
    resource = fetch_metadata(cache, resource_url)
    resource.file_path = str(download_resource(client, resource_url, destination_dir, resource.title))
    return resource


def fetch_metadata(cache: FetchCache, resource_url: str) -> Resource:
    log.info("[DOWNLOAD] Fetching metadata of %s", resource_url)
    try:
        metadata = LayerMetadata.from_json(cache.fetch(resource_url), resource_url)
    except (FetchError, ValueError) as e:
        raise DownloadError(f"Failed to read metadata of {resource_url}: {e}") from e

    if metadata.type not in SUPPORTED_LAYER_TYPES:
        log.error("[DOWNLOAD] Refusing %s: unsupported type %s", resource_url, metadata.type)
        raise UnsupportedResourceTypeError(metadata.type)

    return Resource(
        id=resource_url,
        title=f"{metadata.name}-{metadata.id}",
        origin=resource_url,
        description=metadata.description,
    )


def query_params(offset: int, page_size: int = PAGE_SIZE) -> Dict[str, Any]:
    return {
        "where": "1=1",
        "f": "geojson",
        "outFields": "*",
        "resultOffset": offset,
        "resultRecordCount": page_size,
    }


def fetch_all_features(
    client: HttpClient,
    resource_url: str,
    page_size: int = PAGE_SIZE,
) -> Tuple[Dict[str, Any], List[Dict[str, Any]], int]:
    """
    Page through the layer's query endpoint.

    Returns the first page with ``features`` emptied (the document template),
    every feature in offset order, and the number of requests made.
    """
    query_url = f"{resource_url}/query"
    template: Dict[str, Any] = {}
    all_features: List[Dict[str, Any]] = []
    offset = 0
    request_count = 0

    while True:
        data = client.get_json(query_url, params=query_params(offset, page_size))
        request_count += 1
        if not isinstance(data, dict):
            raise FetchError(f"Malformed query response from {query_url}", query_url)

        features = data.get("features")
        if isinstance(features, list):
            all_features.extend(features)
        log.debug("[DOWNLOAD] Page %d (offset %d): %d features",
                  request_count, offset, len(features) if isinstance(features, list) else 0)

        if request_count == 1:
            template = {**data, "features": []}
            # paging flag describes one page, not the assembled collection
            template.pop("exceededTransferLimit", None)

        if not data.get("exceededTransferLimit"):
            break
        offset += page_size

    return template, all_features, request_count


def write_geojson(document: Dict[str, Any], out_file: Path) -> None:
    """Write ``document`` to ``out_file`` in one go; never leaves a partial file."""
    tmp_file = out_file.with_name(out_file.name + ".part")
    try:
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False, separators=(",", ":"))
        os.replace(tmp_file, out_file)
    except OSError:
        tmp_file.unlink(missing_ok=True)
        raise


def download_resource(
    client: HttpClient,
    resource_url: str,
    destination_dir: Union[str, Path],
    title: str,
) -> Path:
    """Download every feature of ``resource_url`` into ``<destination_dir>/<title>.geojson``."""
    out_file = Path(destination_dir) / f"{sanitize_title(title)}.geojson"
    log.info("[DOWNLOAD] Downloading %s -> %s", resource_url, out_file)

    try:
        template, all_features, request_count = fetch_all_features(client, resource_url)
        out_file.parent.mkdir(parents=True, exist_ok=True)
        write_geojson({**template, "features": all_features}, out_file)
    except (FetchError, OSError) as e:
        log.error("[DOWNLOAD] Failed to download %s: %s", resource_url, e)
        raise DownloadError(f"Failed to download {resource_url}: {e}") from e

    log.info("[DOWNLOAD] Saved %d features in %d requests to %s", len(all_features), request_count, out_file)
    return out_file
