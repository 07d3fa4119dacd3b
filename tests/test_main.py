import pytest
import yaml

from photo_sorter import main as cli
from photo_sorter.app import PhotoSorter, RunReport, RunStatus
from photo_sorter.errors import ScanError
from photo_sorter.stats import StatsSnapshot
from photo_sorter.metadata_extractor import ExifData

from tests.conftest import FakeExtractor, write_file

PIXEL = ExifData(create_date="2024:01:02 10:00:00", model="Pixel 7")


@pytest.fixture(autouse=True)
def no_signal_handlers(monkeypatch):
    monkeypatch.setattr(cli, "install_signal_handlers", lambda cancel_event: None)


@pytest.fixture
def fake_sorter(monkeypatch):
    extractor = FakeExtractor({"a.jpg": PIXEL})
    monkeypatch.setattr(cli, "PhotoSorter",
                        lambda config: PhotoSorter(config, extractor=extractor))


def test_init_config(tmp_path):
    path = tmp_path / "config.yaml"

    assert cli.main(["-c", str(path), "--init-config"]) == cli.EXIT_OK
    assert yaml.safe_load(path.read_text())["workers"] == 4


def test_invalid_settings(tmp_path, capsys):
    code = cli.main(["-c", str(tmp_path / "none.yaml"), "--src", str(tmp_path / "missing")])

    assert code == cli.EXIT_FAILURE
    assert "Error:" in capsys.readouterr().err


def test_run_with_overrides(fake_sorter, src, dst, tmp_path, capsys):
    write_file(src / "a.jpg")

    code = cli.main(["-c", str(tmp_path / "none.yaml"), "--src", str(src), "--dst", str(dst),
                     "--workers", "2", "--date-format", "%Y-%m-%d", "--verify"])

    assert code == cli.EXIT_OK
    assert (dst / "2024-01-02" / "Pixel_7" / "a.jpg").exists()
    out = capsys.readouterr().out
    assert "Succeeded: 1" in out
    assert "Verification: match" in out


def test_run_with_failures(fake_sorter, src, dst, tmp_path):
    write_file(src / "broken.jpg")

    code = cli.main(["-c", str(tmp_path / "none.yaml"), "--src", str(src), "--dst", str(dst)])

    assert code == cli.EXIT_FAILURE


def test_config_file_is_used(fake_sorter, src, dst, tmp_path):
    write_file(src / "a.jpg")
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"src_dir": str(src), "dst_dir": str(dst), "dry_run": True}))

    assert cli.main(["-c", str(path)]) == cli.EXIT_OK
    assert not (dst / "2024-01" / "Pixel_7" / "a.jpg").exists()


def test_verify_command(src, tmp_path, capsys):
    write_file(src / "a.jpg")
    write_file(src / "README.md")
    target = tmp_path / "target"
    write_file(target / "2024-01" / "a.jpg")

    assert cli.verify_main(["--source", str(src), "--target", str(target)]) == cli.EXIT_FAILURE
    assert "README.md" in capsys.readouterr().out
    assert cli.verify_main(["--source", str(src), "--target", str(target),
                            "--ignore", "*.md"]) == cli.EXIT_OK


def test_verify_command_missing_directory(src, tmp_path, capsys):
    code = cli.verify_main(["--source", str(src), "--target", str(tmp_path / "missing")])

    assert code == cli.EXIT_FAILURE
    assert "does not exist" in capsys.readouterr().err


def test_failed_run_prints_summary(monkeypatch, src, tmp_path, capsys):
    class BrokenSorter:
        def __init__(self, config):
            pass

        def run(self, cancel_event=None):
            return RunReport(status=RunStatus.FAILED, stats=StatsSnapshot(total_files=3, success_count=1),
                             duration=0.5, error=ScanError("permission denied: /photos/private"))

    monkeypatch.setattr(cli, "PhotoSorter", BrokenSorter)

    code = cli.main(["-c", str(tmp_path / "none.yaml"), "--src", str(src)])

    out = capsys.readouterr().out
    assert code == cli.EXIT_FAILURE
    assert "Status: failed" in out
    assert "Succeeded: 1" in out
    assert "permission denied" in out
