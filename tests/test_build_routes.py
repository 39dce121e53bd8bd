"""Tests for build_routes.py"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

import build_routes
from build_routes import build, fetch_routes, main, route_filename, save_routes
from osm2routes import OverpassError, aggregate_routes, encode_routes


def _way(*points):
    return {"type": "way", "geometry": [{"lat": lat, "lon": lon} for lat, lon in points]}


SAMPLE_ELEMENTS = [
    {"type": "relation", "id": 1,
     "tags": {"ref": "A1", "network": "bg:motorway", "name": "Тракия"},
     "members": [_way((42.70, 23.32), (42.65, 23.60)), _way((42.65, 23.60), (42.50, 24.70))]},
    {"type": "relation", "id": 2,
     "tags": {"ref": "6", "network": "bg:national"},
     "members": [_way((42.0, 23.0), (42.1, 23.1)), _way((43.0, 25.0), (43.1, 25.1))]},
    {"type": "relation", "id": 3,
     "tags": {"ref": "SOF 1001", "network": "bg:municipal", "name": "Околовръстен"},
     "members": [_way((42.6, 23.2), (42.61, 23.21))]},
]


def _write_cache(elements):
    fd, path = tempfile.mkstemp(suffix=".json")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump({"elements": elements}, f)
    return path


class TestRouteFilename:
    def test_numeric_ref(self):
        assert route_filename(6) == "route-6.json"

    def test_whitespace_replaced(self):
        assert route_filename("SOF  1001\t2") == "route-SOF_1001_2.json"


class TestFetchRoutes:
    def setup_method(self):
        self.cache_path = _write_cache(SAMPLE_ELEMENTS)

    def teardown_method(self):
        if os.path.exists(self.cache_path):
            os.unlink(self.cache_path)

    def test_offline_loads_cache(self):
        assert fetch_routes(offline=True, cache_file=self.cache_path) == SAMPLE_ELEMENTS

    def test_offline_missing_cache(self):
        os.unlink(self.cache_path)
        with pytest.raises(FileNotFoundError):
            fetch_routes(offline=True, cache_file=self.cache_path)

    @patch("build_routes.fetch_elements")
    def test_online_writes_cache(self, mock_fetch):
        mock_fetch.return_value = SAMPLE_ELEMENTS[:1]
        assert fetch_routes(offline=False, cache_file=self.cache_path) == SAMPLE_ELEMENTS[:1]
        with open(self.cache_path, encoding="utf-8") as f:
            assert json.load(f) == {"elements": SAMPLE_ELEMENTS[:1]}


class TestSaveRoutes:
    def setup_method(self):
        self.out_dir = Path(tempfile.mkdtemp()) / "output"
        self.index = encode_routes(aggregate_routes(SAMPLE_ELEMENTS))
        save_routes(self.index, self.out_dir)

    def teardown_method(self):
        shutil.rmtree(self.out_dir.parent)

    def test_route_files_written(self):
        names = sorted(p.name for p in self.out_dir.iterdir())
        assert names == [
            "route-6.json", "route-A1.json", "route-SOF_1001.json",
            "routes-map.js", "routes.json",
        ]

    def test_route_file_content(self):
        data = json.loads((self.out_dir / "route-6.json").read_text(encoding="utf-8"))
        assert list(data) == ["ref", "type", "name", "polylines"]
        assert data["ref"] == 6
        assert data["type"] == "national"
        assert data["name"] is None
        assert len(data["polylines"]) == 2

    def test_non_ascii_written_verbatim(self):
        text = (self.out_dir / "route-A1.json").read_text(encoding="utf-8")
        assert "Тракия" in text

    def test_index_file(self):
        data = json.loads((self.out_dir / "routes.json").read_text(encoding="utf-8"))
        assert data["date"].endswith("Z")
        assert data["data"] == [
            {"ref": "A1", "type": "motorway", "name": "Тракия"},
            {"ref": 6, "type": "national", "name": None},
            {"ref": "SOF 1001", "type": "municipal", "name": "Околовръстен"},
        ]

    def test_lookup_module(self):
        text = (self.out_dir / "routes-map.js").read_text(encoding="utf-8")
        assert text == (
            "export const routes_map = new Map();\n"
            "routes_map.set('A1', new URL('route-A1.json', import.meta.url));\n"
            "routes_map.set('6', new URL('route-6.json', import.meta.url));\n"
            "routes_map.set('SOF 1001', new URL('route-SOF_1001.json', import.meta.url));\n"
        )


class TestBuild:
    def setup_method(self):
        self.cache_path = _write_cache(SAMPLE_ELEMENTS)
        self.tmpdir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        os.unlink(self.cache_path)
        shutil.rmtree(self.tmpdir)

    def test_rebuild_is_byte_identical(self):
        first, second = self.tmpdir / "first", self.tmpdir / "second"
        build(offline=True, out_dir=first, cache_file=self.cache_path)
        build(offline=True, out_dir=second, cache_file=self.cache_path)
        for name in ("route-A1.json", "route-6.json", "route-SOF_1001.json", "routes-map.js"):
            assert (first / name).read_bytes() == (second / name).read_bytes()

    def test_fetch_failure_writes_nothing(self):
        out_dir = self.tmpdir / "out"
        with patch("build_routes.fetch_elements", side_effect=OverpassError("down")):
            with pytest.raises(OverpassError):
                build(offline=False, out_dir=out_dir, cache_file=self.cache_path)
        assert not out_dir.exists()


class TestMain:
    def setup_method(self):
        self.cache_path = _write_cache(SAMPLE_ELEMENTS)
        self.tmpdir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        os.unlink(self.cache_path)
        shutil.rmtree(self.tmpdir)

    @patch.object(build_routes, "setup_logging")
    def test_offline_success(self, _mock_logging):
        out_dir = self.tmpdir / "out"
        code = main(["--offline", "--cache", self.cache_path, "--out", str(out_dir), "--stats"])
        assert code == 0
        assert (out_dir / "routes.json").exists()

    @patch.object(build_routes, "setup_logging")
    def test_failure_returns_nonzero(self, _mock_logging):
        missing = str(self.tmpdir / "missing.json")
        code = main(["--offline", "--cache", missing, "--out", str(self.tmpdir / "out")])
        assert code == 1

    @patch.object(build_routes, "setup_logging")
    def test_invalid_cache_returns_nonzero(self, _mock_logging):
        bad_cache = self.tmpdir / "bad.json"
        bad_cache.write_text("<<<not json>>>", encoding="utf-8")
        code = main(["--offline", "--cache", str(bad_cache), "--out", str(self.tmpdir / "out")])
        assert code == 1
        assert not (self.tmpdir / "out").exists()

    @patch.object(build_routes, "setup_logging")
    def test_write_failure_keeps_earlier_files(self, _mock_logging):
        out_dir = self.tmpdir / "out"
        real_write_text = Path.write_text
        calls = []

        def failing_write_text(path, *args, **kwargs):
            calls.append(path.name)
            if len(calls) == 2:
                raise OSError("disk full")
            return real_write_text(path, *args, **kwargs)

        with patch.object(Path, "write_text", failing_write_text):
            code = main(["--offline", "--cache", self.cache_path, "--out", str(out_dir)])

        assert code == 1
        assert (out_dir / "route-A1.json").exists()
        assert not (out_dir / "route-6.json").exists()
        assert not (out_dir / "routes.json").exists()
        assert not (out_dir / "routes-map.js").exists()
