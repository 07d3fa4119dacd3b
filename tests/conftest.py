import json
import threading
from typing import Dict, Optional

import pytest

from photo_sorter.config import Config
from photo_sorter.errors import MetadataError
from photo_sorter.metadata_extractor import ExifData


class FakeExtractor:
    """Metadata source keyed by file name; unknown names have no metadata."""

    def __init__(self, records: Optional[Dict[str, ExifData]] = None, default: Optional[ExifData] = None):
        self.records = records or {}
        self.default = default
        self.calls = []
        self._lock = threading.Lock()

    def extract(self, file_path: str) -> ExifData:
        name = file_path.replace("\\", "/").rsplit("/", 1)[-1]
        with self._lock:
            self.calls.append(file_path)
        if name in self.records:
            return self.records[name]
        if self.default is not None:
            return self.default
        raise MetadataError(f"no metadata for {file_path}")


class RecordingTagger:
    def __init__(self):
        self.tags = []

    def add_tag(self, path, tag):
        self.tags.append((path, tag))

    def remove_tag(self, path, tag):
        pass

    def list_tags(self, path):
        return [tag for p, tag in self.tags if p == path]


REGIONS = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {"name": "Square Land", "adm0_a3": "AAA"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]],
            },
        },
        {
            "type": "Feature",
            "properties": {"name": "Inner", "adm0_a3": "AAA"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[2, 2], [4, 2], [4, 4], [2, 4], [2, 2]]],
            },
        },
        {
            "type": "Feature",
            "properties": {"name": "Lone Point", "adm0_a3": "CCC"},
            "geometry": {"type": "Point", "coordinates": [50, 50]},
        },
        {
            "type": "Feature",
            "properties": {"name": "Twin Islands", "adm0_a3": "BBB"},
            "geometry": {
                "type": "MultiPolygon",
                "coordinates": [
                    [[[20, 20], [22, 20], [22, 22], [20, 22], [20, 20]]],
                    [[[30, -5], [32, -5], [32, -3], [30, -3], [30, -5]]],
                ],
            },
        },
    ],
}


def write_file(path, content=b"data"):
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        content = content.encode("utf-8")
    path.write_bytes(content)
    return path


@pytest.fixture
def geojson_path(tmp_path):
    path = tmp_path / "regions.geojson"
    path.write_text(json.dumps(REGIONS), encoding="utf-8")
    return path


@pytest.fixture
def src(tmp_path):
    path = tmp_path / "src"
    path.mkdir()
    return path


@pytest.fixture
def dst(tmp_path):
    return tmp_path / "dst"


@pytest.fixture
def config(src, dst):
    return Config(src_dir=str(src), dst_dir=str(dst), workers=2,
                  queue_size=4, progress_interval=0.05)
