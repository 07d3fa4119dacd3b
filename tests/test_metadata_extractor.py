import json
import subprocess
from datetime import datetime

import pytest
from PIL import Image

from photo_sorter import metadata_extractor
from photo_sorter.errors import MetadataError
from photo_sorter.metadata_extractor import (
    ExifData,
    MetadataExtractor,
    format_dms,
    parse_gps_string,
)


def test_parse_gps_string_north_east():
    assert parse_gps_string('22 deg 41\' 58.80" N') == pytest.approx(22.6996667, abs=1e-6)
    assert parse_gps_string('120 deg 30\' 0.00" E') == pytest.approx(120.5)


def test_parse_gps_string_south_west_negative():
    assert parse_gps_string('33 deg 52\' 7.68" S') < 0
    assert parse_gps_string('74 deg 0\' 21.60" W') == pytest.approx(-74.006, abs=1e-6)


def test_parse_gps_string_empty_is_zero():
    assert parse_gps_string("") == 0.0


@pytest.mark.parametrize("value", ["north", "22 deg", "22 deg 41'", "a deg b' c\" N"])
def test_parse_gps_string_invalid(value):
    with pytest.raises(ValueError):
        parse_gps_string(value)


def test_format_dms_matches_exiftool_shape():
    assert format_dms([22, 41, 58.8], "N") == '22 deg 41\' 58.80" N'
    assert parse_gps_string(format_dms([74, 0, 21.6], "W")) == pytest.approx(-74.006, abs=1e-6)


def test_parse_exiftool_output():
    output = json.dumps([{
        "SourceFile": "a.jpg",
        "CreateDate": "2024:01:02 10:00:00",
        "Model": "Pixel 7",
        "GPSLatitude": '25 deg 1\' 58.80" N',
        "GPSLongitude": '121 deg 33\' 55.44" E',
    }])

    data = MetadataExtractor.parse_exiftool_output(output, "a.jpg")

    assert data == ExifData(
        create_date="2024:01:02 10:00:00",
        model="Pixel 7",
        gps_latitude='25 deg 1\' 58.80" N',
        gps_longitude='121 deg 33\' 55.44" E',
    )
    assert data.has_gps()


@pytest.mark.parametrize("output", ["not json", "[]", "{}"])
def test_parse_exiftool_output_errors(output):
    with pytest.raises(MetadataError):
        MetadataExtractor.parse_exiftool_output(output, "a.jpg")


def test_extract_runs_exiftool(monkeypatch):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured["cmd"] = cmd
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps([{"Model": "X100"}]), stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    data = MetadataExtractor().extract("/photos/a.jpg")

    assert data.model == "X100"
    assert captured["cmd"][0] == "exiftool"
    assert "-json" in captured["cmd"]
    assert captured["cmd"][-1] == "/photos/a.jpg"


def test_extract_exiftool_failure_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, output="", stderr="File not found")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(MetadataError, match="File not found"):
        MetadataExtractor().extract("/photos/missing.jpg")


def test_falls_back_to_pillow_without_exiftool(monkeypatch, tmp_path):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    path = tmp_path / "camera.jpg"
    exif = Image.Exif()
    exif[0x0110] = "Pixel 7"
    Image.new("RGB", (8, 8), "red").save(path, exif=exif)

    extractor = MetadataExtractor()
    data = extractor.extract(str(path))

    assert data.model == "Pixel 7"
    assert extractor._exiftool_available is False


def test_fallback_without_any_metadata_raises(monkeypatch, tmp_path):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    path = tmp_path / "garbage.jpg"
    path.write_bytes(b"\x00" * 64)

    with pytest.raises(MetadataError):
        MetadataExtractor().extract(str(path))


def exiftool_missing(cmd, **kwargs):
    raise FileNotFoundError(cmd[0])


class FakeHachoirMetadata:
    def __init__(self, values):
        self.values = values

    def has(self, key):
        return key in self.values

    def get(self, key):
        return self.values[key]


class FakeParser:
    closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True


def test_falls_back_to_hachoir_for_videos(monkeypatch, tmp_path):
    monkeypatch.setattr(subprocess, "run", exiftool_missing)
    parser = FakeParser()
    monkeypatch.setattr(metadata_extractor, "createParser", lambda path: parser)
    monkeypatch.setattr(metadata_extractor, "extractMetadata", lambda p: FakeHachoirMetadata({
        "creation_date": datetime(2023, 7, 8, 9, 10, 11),
        "producer": "GoPro HERO9",
    }))

    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")

    data = MetadataExtractor().extract(str(path))

    assert data == ExifData(media_create_date="2023:07:08 09:10:11", model="GoPro HERO9")
    assert parser.closed


def test_falls_back_to_exifread(monkeypatch, tmp_path):
    class Tag:
        def __init__(self, text, values=None):
            self.text = text
            self.values = values

        def __str__(self):
            return self.text

    monkeypatch.setattr(subprocess, "run", exiftool_missing)
    monkeypatch.setattr(metadata_extractor.exifread, "process_file", lambda f, details=False: {
        "EXIF DateTimeOriginal": Tag("2022:12:24 18:30:00"),
        "Image Model": Tag("X100V"),
        "GPS GPSLatitude": Tag("", [25, 2, 0]),
        "GPS GPSLatitudeRef": Tag("N"),
        "GPS GPSLongitude": Tag("", [121, 30, 0]),
        "GPS GPSLongitudeRef": Tag("E"),
    })

    path = tmp_path / "raw.jpg"
    path.write_bytes(b"not really a jpeg")

    data = MetadataExtractor().extract(str(path))

    assert data.create_date == "2022:12:24 18:30:00"
    assert data.model == "X100V"
    assert parse_gps_string(data.gps_latitude) == pytest.approx(25 + 2 / 60)
    assert parse_gps_string(data.gps_longitude) == pytest.approx(121.5)
