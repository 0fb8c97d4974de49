"""
Shared fixtures for the Lightsift test suite.
"""

import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Make the root-level cli module importable
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def write_jpeg(path: Path, raster: np.ndarray, quality: int = 90) -> Path:
    Image.fromarray(raster).save(path, 'JPEG', quality=quality)
    return path


@pytest.fixture
def rng():
    """Deterministic random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def photo_folder(tmp_path, rng):
    """Folder with two decodable JPEGs, one corrupt JPEG and a non-image."""
    folder = tmp_path / "shoot"
    folder.mkdir()

    gradient = np.tile(np.linspace(20, 230, 96, dtype=np.uint8), (64, 1))
    warm = np.stack([gradient, (gradient * 0.7).astype(np.uint8), (gradient * 0.4).astype(np.uint8)], axis=2)
    write_jpeg(folder / "a_warm.jpg", warm)

    noisy = rng.integers(0, 256, size=(48, 80, 3), dtype=np.uint8)
    write_jpeg(folder / "b_noisy.jpg", noisy)

    (folder / "c_broken.jpg").write_bytes(b"not really a jpeg")
    (folder / "notes.txt").write_text("ignore me")
    return folder


@pytest.fixture
def session_config(tmp_path):
    """Default config with thumbnails written under the test directory."""
    from lightsift.config import get_default_config

    config = get_default_config()
    config['thumbnails']['directory'] = str(tmp_path / "thumbs")
    config['pipeline']['workers'] = 2
    return config
