import argparse
import json
import logging
import sys
from pathlib import Path

from arcgis_catalog.config import ConfigError, config_from_dict, load_config
from arcgis_catalog.download import DownloadError, UnsupportedResourceTypeError
from arcgis_catalog.http_utils import FetchError
from arcgis_catalog.logging_config import setup_logging
from arcgis_catalog.plugin import ArcGISCatalog


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _run_list(catalog: ArcGISCatalog, args) -> None:
    _print_json(catalog.list(args.folder).to_dict())


def _run_download(catalog: ArcGISCatalog, args) -> None:
    resource = catalog.get_resource(args.resource, Path(args.out))
    logging.info("Saved %s to %s", resource.title, resource.file_path)
    _print_json(resource.to_dict())


def _run_services(catalog: ArcGISCatalog, args) -> None:
    _print_json([
        {"name": s.name, "type": s.type, "url": s.url}
        for s in catalog.list_services()
    ])


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Browse and download ArcGIS REST catalogs")
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--config", help="Path to catalog.yaml")
    source.add_argument("--url", help="Services directory URL (instead of --config)")
    p.add_argument("--log-level", default="WARNING", help="Console log level")
    p.add_argument("--log-file", default=None, help="Optional debug log file")

    sub = p.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List a folder, service or layer")
    p_list.add_argument("--folder", default=None, help="Folder id (URL) to list; root if omitted")
    p_list.set_defaults(runner=_run_list)

    p_download = sub.add_parser("download", help="Download a layer as GeoJSON")
    p_download.add_argument("resource", help="Layer URL as returned by 'list'")
    p_download.add_argument("--out", default=".", help="Destination directory")
    p_download.set_defaults(runner=_run_download)

    p_services = sub.add_parser("services", help="List every service of the directory")
    p_services.set_defaults(runner=_run_services)
    return p


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)

    setup_logging(
        console_level=args.log_level,
        file_path=Path(args.log_file) if args.log_file else None,
    )

    try:
        cfg = load_config(Path(args.config)) if args.config else config_from_dict({"url": args.url})
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    catalog = ArcGISCatalog(cfg)
    try:
        args.runner(catalog, args)
    except (FetchError, DownloadError, UnsupportedResourceTypeError, ValueError) as e:
        logging.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
