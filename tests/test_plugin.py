"""
Tests for the catalog facade and the command line entry point.
"""
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import run
from arcgis_catalog.config import CatalogConfig, ConfigError
from arcgis_catalog.plugin import ArcGISCatalog

from fakes import FakeClient, make_features, query_url

BASE = "https://example.com/arcgis/rest/services"
SERVICE = f"{BASE}/Transport/Roads/FeatureServer"
LAYER = f"{SERVICE}/0"


def make_server():
    client = FakeClient()
    client.add(BASE, {"f": "json"}, {
        "folders": ["Transport"],
        "services": [{"name": "Basemap", "type": "VectorTileServer"}],
    })
    client.add(f"{BASE}/Transport", {"f": "json"}, {
        "services": [{"name": "Transport/Roads", "type": "FeatureServer", "url": SERVICE}],
    })
    client.add(SERVICE, {"f": "json"}, {
        "layers": [{"id": 0, "name": "Roads", "type": "Feature Layer", "parentLayerId": -1}],
    })
    client.add(LAYER, {"f": "json"}, {"id": 0, "name": "Roads", "type": "Feature Layer", "description": ""})
    client.routes[query_url(LAYER, 0)] = {
        "type": "FeatureCollection", "features": make_features(0, 1000), "exceededTransferLimit": True,
    }
    client.routes[query_url(LAYER, 1000)] = {"type": "FeatureCollection", "features": make_features(1000, 5)}
    return client


class TestArcGISCatalog(unittest.TestCase):

    def setUp(self):
        self.client = make_server()
        self.catalog = ArcGISCatalog(CatalogConfig(url=BASE), client=self.client)

    def test_navigate_then_download(self):
        root = self.catalog.list()
        self.assertEqual([n.title for n in root.results], ["Transport"])

        folder = self.catalog.list(root.results[0].id)
        self.assertEqual([n.title for n in folder.results], ["Transport/Roads (FeatureServer)"])

        service = self.catalog.list(folder.results[0].id)
        self.assertEqual([f.title for f in service.path], ["Transport", "Roads"])
        layer = service.results[0]
        self.assertEqual(layer.type, "resource")

        with tempfile.TemporaryDirectory() as tmp_dir:
            resource = self.catalog.get_resource(layer.id, tmp_dir)
            data = json.loads(Path(resource.file_path).read_text(encoding="utf-8"))

        self.assertEqual(resource.title, "Roads-0")
        self.assertEqual(len(data["features"]), 1005)

    def test_list_and_download_share_cache(self):
        self.catalog.list(SERVICE)
        with tempfile.TemporaryDirectory() as tmp_dir:
            self.catalog.get_resource(LAYER, tmp_dir)
            self.catalog.get_resource(LAYER, tmp_dir)
        self.assertEqual(self.client.requests.count(f"{LAYER}?f=json"), 1)
        self.assertEqual(self.client.requests.count(query_url(LAYER, 0)), 2)

    def test_prepare(self):
        self.assertIs(self.catalog.prepare(), self.catalog.config)

    def test_prepare_invalid_url(self):
        catalog = ArcGISCatalog(CatalogConfig(url="https://nowhere.example.com/rest/services"), client=self.client)
        with self.assertRaises(ConfigError):
            catalog.prepare()

    def test_default_client_gets_secrets_as_headers(self):
        catalog = ArcGISCatalog(CatalogConfig(url=BASE, secrets={"X-Esri-Authorization": "Bearer t"}, cache_ttl=10))
        self.assertEqual(catalog.client._default_headers["X-Esri-Authorization"], "Bearer t")
        self.assertEqual(catalog.cache.ttl, 10.0)
        self.assertIs(catalog.cache.client, catalog.client)

    def test_metadata(self):
        self.assertEqual(ArcGISCatalog.metadata["capabilities"], ["list", "getResource"])


class TestRunCli(unittest.TestCase):

    def setUp(self):
        self.client = make_server()
        patcher = patch("run.ArcGISCatalog", side_effect=lambda cfg: ArcGISCatalog(cfg, client=self.client))
        patcher.start()
        self.addCleanup(patcher.stop)
        setup = patch("run.setup_logging")
        setup.start()
        self.addCleanup(setup.stop)

    def test_list(self):
        with patch("builtins.print") as mock_print:
            code = run.main(["--url", BASE, "list", "--folder", SERVICE])
        self.assertEqual(code, 0)
        output = json.loads(mock_print.call_args[0][0])
        self.assertEqual(output["count"], 1)
        self.assertEqual(output["results"][0]["id"], LAYER)

    def test_services(self):
        with patch("builtins.print") as mock_print:
            code = run.main(["--url", BASE, "services"])
        self.assertEqual(code, 0)
        names = [s["name"] for s in json.loads(mock_print.call_args[0][0])]
        self.assertEqual(names, ["Basemap", "Transport/Roads"])

    def test_download(self):
        with tempfile.TemporaryDirectory() as tmp_dir, patch("builtins.print"):
            code = run.main(["--url", BASE, "download", LAYER, "--out", tmp_dir])
            self.assertTrue((Path(tmp_dir) / "Roads-0.geojson").exists())
        self.assertEqual(code, 0)

    def test_download_error_exit_code(self):
        with tempfile.TemporaryDirectory() as tmp_dir, patch("builtins.print"):
            code = run.main(["--url", BASE, "download", f"{SERVICE}/9", "--out", tmp_dir])
        self.assertEqual(code, 1)

    def test_bad_url(self):
        with patch("builtins.print"):
            self.assertEqual(run.main(["--url", "not-a-url", "list"]), 2)


if __name__ == '__main__':
    unittest.main()
