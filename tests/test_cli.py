"""
Tests for the command line interface.
"""

import json
import logging

import pytest
from click.testing import CliRunner
from PIL import Image

import cli
from lightsift.models import AdjustmentParameters
from lightsift.utils.xmp_sidecar import XMPSidecar


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_console_logging():
    root_logger = logging.getLogger()
    previous_level = root_logger.level
    yield
    root_logger.setLevel(previous_level)
    for handler in list(root_logger.handlers):
        if getattr(handler, '_lightsift_console', False):
            root_logger.removeHandler(handler)


@pytest.fixture
def good_folder(photo_folder):
    """Photo folder without the undecodable file."""
    (photo_folder / "c_broken.jpg").unlink()
    return photo_folder


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"thumbnails:\n  directory: {tmp_path / 'thumbs'}\npipeline:\n  workers: 1\n")
    return path


class TestScan:
    """Test the scan command."""

    def test_scan_lists_images(self, runner, photo_folder):
        result = runner.invoke(cli.main, ['scan', str(photo_folder)])
        assert result.exit_code == 0
        assert 'a_warm.jpg' in result.output
        assert 'notes.txt' not in result.output
        assert '3 images, 0 with sidecars' in result.output

    def test_scan_json(self, runner, photo_folder):
        XMPSidecar(photo_folder / "a_warm.jpg").write(AdjustmentParameters(rating=4))
        result = runner.invoke(cli.main, ['--quiet', 'scan', str(photo_folder), '--json'])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data['files']) == 3
        assert [v['rating'] for v in data['edit_states'].values()] == [4]

    def test_scan_missing_directory(self, runner, tmp_path):
        result = runner.invoke(cli.main, ['scan', str(tmp_path / "absent")])
        assert result.exit_code != 0


class TestAnalyzeAndEnhance:
    """Test the analyze and enhance commands."""

    def test_analyze_writes_report(self, runner, good_folder, tmp_path):
        report = tmp_path / "report.json"
        result = runner.invoke(cli.main, ['--quiet', 'analyze', str(good_folder), '-o', str(report)])
        assert result.exit_code == 0
        entries = json.loads(report.read_text())
        assert [e['path'].endswith(name) for e, name in zip(entries, ['a_warm.jpg', 'b_noisy.jpg'])] == [True, True]
        assert all(e['success'] for e in entries)
        # Analysis never writes sidecars
        assert not (good_folder / "a_warm.xmp").exists()

    def test_analyze_failure_exit_code(self, runner, photo_folder):
        result = runner.invoke(cli.main, ['--quiet', 'analyze', str(photo_folder), '-w', '2'])
        assert result.exit_code == 1

    def test_enhance_writes_sidecars(self, runner, good_folder):
        result = runner.invoke(cli.main, ['--quiet', 'enhance', str(good_folder), '--strength', '0.5'])
        assert result.exit_code == 0
        assert XMPSidecar(good_folder / "a_warm.jpg").exists()
        assert XMPSidecar(good_folder / "b_noisy.jpg").exists()

    def test_enhance_strength_range(self, runner, good_folder):
        result = runner.invoke(cli.main, ['enhance', str(good_folder), '--strength', '1.5'])
        assert result.exit_code == 2


class TestPreviewExportThumbnails:
    """Test the rendering commands."""

    def test_preview_with_edits(self, runner, photo_folder, tmp_path):
        edits = tmp_path / "edits.json"
        edits.write_text(AdjustmentParameters(exposure=0.5).to_json())
        output = tmp_path / "preview.jpg"
        result = runner.invoke(cli.main, [
            '--quiet', 'preview', str(photo_folder / "a_warm.jpg"),
            '-o', str(output), '--max-size', '48', '--edits', str(edits),
        ])
        assert result.exit_code == 0
        with Image.open(output) as image:
            assert image.size == (48, 32)

    def test_preview_of_broken_image(self, runner, photo_folder, tmp_path):
        result = runner.invoke(cli.main, [
            'preview', str(photo_folder / "c_broken.jpg"), '-o', str(tmp_path / "p.jpg"),
        ])
        assert result.exit_code == 1
        assert 'Preview failed' in result.output

    def test_export(self, runner, good_folder, tmp_path):
        destination = tmp_path / "exported"
        result = runner.invoke(cli.main, [
            '--quiet', 'export', str(good_folder), '-d', str(destination), '-f', 'png', '--resize', '40',
        ])
        assert result.exit_code == 0
        with Image.open(destination / "a_warm.png") as image:
            assert image.size == (40, 26)
        assert (destination / "b_noisy.png").exists()

    def test_thumbnails(self, runner, photo_folder, config_file, tmp_path):
        result = runner.invoke(cli.main, ['--config', str(config_file), 'thumbnails', str(photo_folder)])
        assert result.exit_code == 0
        assert len(list((tmp_path / "thumbs").glob("*.jpg"))) == 3

    def test_thumbnails_dir_option(self, runner, photo_folder, tmp_path):
        thumb_dir = tmp_path / "custom"
        result = runner.invoke(cli.main, ['thumbnails', str(photo_folder), '--thumb-dir', str(thumb_dir)])
        assert result.exit_code == 0
        assert len(list(thumb_dir.glob("*.jpg"))) == 3
