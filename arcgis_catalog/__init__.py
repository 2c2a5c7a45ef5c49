"""
ArcGIS catalog connector: browse an ArcGIS REST services directory as folders
and resources, and download any feature layer as a GeoJSON file.
"""

from .catalog import build_path, list_catalog, list_services
from .config import CatalogConfig, ConfigError, HttpSettings, load_config
from .download import DownloadError, UnsupportedResourceTypeError, get_resource
from .fetch_cache import FetchCache
from .http_utils import ArcGISServiceError, FetchError, HttpClient
from .models import Folder, ListResult, Resource
from .plugin import ArcGISCatalog

__all__ = [
    "ArcGISCatalog",
    "ArcGISServiceError",
    "CatalogConfig",
    "ConfigError",
    "DownloadError",
    "FetchCache",
    "FetchError",
    "Folder",
    "HttpClient",
    "HttpSettings",
    "ListResult",
    "Resource",
    "UnsupportedResourceTypeError",
    "build_path",
    "get_resource",
    "list_catalog",
    "list_services",
    "load_config",
]
