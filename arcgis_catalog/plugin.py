"""
Catalog entry point: one object per configured ArcGIS services directory.

The host only sees folders and resources; list() and get_resource() share the
same HttpClient and FetchCache.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from . import catalog, download
from .config import CatalogConfig, ConfigError
from .fetch_cache import FetchCache
from .http_utils import FetchError, HttpClient
from .models import ListResult, Resource, ServiceDescriptor

log = logging.getLogger(__name__)

CAPABILITIES = ("list", "getResource")

METADATA = {
    "title": "Catalog ArcGIS",
    "description": "Import geospatial data from ArcGIS REST services.",
    "capabilities": list(CAPABILITIES),
}


class ArcGISCatalog:
    """Browse an ArcGIS services directory and download its layers as GeoJSON."""

    metadata = METADATA

    def __init__(
        self,
        config: CatalogConfig,
        client: Optional[HttpClient] = None,
        cache: Optional[FetchCache] = None,
    ) -> None:
        self.config = config
        self.client = client or HttpClient(headers=config.secrets, cfg=config.http.to_client_cfg())
        self.cache = cache or FetchCache(self.client, ttl=config.cache_ttl)

    def prepare(self) -> CatalogConfig:
        """Check that the services directory answers; return the config unchanged."""
        try:
            self.client.get_json(self.config.url, params={"f": "json"})
        except FetchError as e:
            log.error("[CATALOG] Error testing ArcGIS URL %s: %s", self.config.url, e)
            raise ConfigError(f"Invalid ArcGIS URL: {self.config.url} ({e})") from e
        return self.config

    def list(self, current_folder_id: Optional[str] = None) -> ListResult:
        return catalog.list_catalog(self.cache, self.config.url, current_folder_id)

    def get_resource(self, resource_id: str, tmp_dir: Union[str, Path]) -> Resource:
        return download.get_resource(self.cache, self.client, resource_id, tmp_dir)

    def list_services(self) -> List[ServiceDescriptor]:
        return catalog.list_services(self.cache, self.config.url)
