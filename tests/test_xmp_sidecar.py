"""
Tests for XMP sidecar persistence.
"""

import xml.etree.ElementTree as ET

import pytest

from lightsift.models import AdjustmentParameters, CropRect, Flag, Rotation
from lightsift.utils.xmp_sidecar import (
    MAX_SIDECAR_BYTES, XMPSidecar, build_xmp, load_sidecars, parse_xmp, stored_form
)


LIGHTROOM_PACKET = """<?xml version="1.0" encoding="UTF-8"?>
<x:xmpmeta xmlns:x="adobe:ns:meta/">
  <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
    <rdf:Description rdf:about=""
        xmlns:xmp="http://ns.adobe.com/xap/1.0/"
        xmlns:crs="http://ns.adobe.com/camera-raw-settings/1.0/"
        xmp:Rating="3"
        crs:Exposure2012="-0.65"
        crs:Contrast2012="+12"
        crs:Temperature="4900"
        crs:Tint="-4"
        crs:Orientation="8"
        crs:SomethingElse="ignored"/>
  </rdf:RDF>
</x:xmpmeta>
"""


@pytest.fixture
def edited():
    return AdjustmentParameters(
        rating=4, flag=Flag.REJECT, crop=CropRect(0.1, 0.2, 0.8, 0.95),
        straighten_angle=-1.5, rotation=Rotation.DEG_90,
        exposure=0.75, contrast=-20.0, highlights=-35.0, shadows=40.0,
        white_balance_temp=6200.0, white_balance_tint=7.0,
        saturation=12.0, vibrance=-8.0, sharpening_amount=30.0,
        sharpening_radius=1.5, noise_reduction=22.0,
    )


class TestXmpPacket:
    """Test building and parsing XMP packets."""

    def test_every_field_survives(self, edited):
        assert parse_xmp(build_xmp(edited)) == edited

    def test_defaults_survive(self):
        assert parse_xmp(build_xmp(AdjustmentParameters())) == AdjustmentParameters()

    def test_exposure_is_signed(self, edited):
        packet = build_xmp(edited)
        assert 'Exposure2012="+0.75"' in packet
        assert 'lightsift:Flag="reject"' in packet

    def test_third_party_packet(self):
        params = parse_xmp(LIGHTROOM_PACKET)
        assert params.rating == 3
        assert params.exposure == pytest.approx(-0.65)
        assert params.contrast == pytest.approx(12.0)
        assert params.white_balance_temp == pytest.approx(4900.0)
        assert params.white_balance_tint == pytest.approx(-4.0)
        assert params.rotation == Rotation.DEG_270
        assert params.flag == Flag.NONE
        assert params.crop is None

    def test_legacy_exposure(self):
        packet = LIGHTROOM_PACKET.replace('crs:Exposure2012="-0.65"', 'crs:Exposure="1.25"')
        assert parse_xmp(packet).exposure == pytest.approx(1.25)

    def test_bad_values_use_defaults(self):
        packet = LIGHTROOM_PACKET.replace('"4900"', '"warm"').replace('xmp:Rating="3"', 'xmp:Rating="11"')
        params = parse_xmp(packet)
        assert params.white_balance_temp == 5500.0
        assert params.rating == 5

    def test_non_finite_numbers(self):
        packet = (LIGHTROOM_PACKET.replace('xmp:Rating="3"', 'xmp:Rating="inf"')
                  .replace('"-0.65"', '"1e999"'))
        params = parse_xmp(packet)
        assert params.rating == 5
        assert params.exposure == 0.0

    def test_exposure_written_to_two_decimals(self):
        params = AdjustmentParameters(exposure=0.694375)
        assert 'Exposure2012="+0.69"' in build_xmp(params)
        assert parse_xmp(build_xmp(params)) == stored_form(params)
        assert stored_form(params).exposure == 0.69

    def test_no_description(self):
        packet = '<x:xmpmeta xmlns:x="adobe:ns:meta/"/>'
        assert parse_xmp(packet) == AdjustmentParameters()

    def test_malformed(self):
        with pytest.raises(ET.ParseError):
            parse_xmp('<x:xmpmeta')

    def test_oversized(self):
        with pytest.raises(ValueError):
            parse_xmp(b' ' * (MAX_SIDECAR_BYTES + 1))


class TestXMPSidecar:
    """Test sidecar files next to images."""

    def test_sidecar_path(self, tmp_path):
        sidecar = XMPSidecar(tmp_path / "DSC001.ARW")
        assert sidecar.sidecar_path == tmp_path / "DSC001.xmp"

    def test_write_then_read(self, tmp_path, edited):
        sidecar = XMPSidecar(tmp_path / "a.jpg")
        assert not sidecar.exists()
        assert sidecar.write(edited)
        assert sidecar.exists()
        assert XMPSidecar(tmp_path / "a.jpg").read() == edited

    def test_missing_reads_none(self, tmp_path):
        assert XMPSidecar(tmp_path / "a.jpg").read() is None

    def test_corrupt_reads_none(self, tmp_path):
        (tmp_path / "a.xmp").write_text("<not xml")
        assert XMPSidecar(tmp_path / "a.jpg").read() is None

    def test_write_failure_returns_false(self, tmp_path):
        sidecar = XMPSidecar(tmp_path / "missing_dir" / "a.jpg")
        assert sidecar.write(AdjustmentParameters()) is False

    def test_load_sidecars(self, tmp_path, edited):
        XMPSidecar(tmp_path / "a.jpg").write(edited)
        (tmp_path / "b.xmp").write_text("garbage")
        paths = [str(tmp_path / name) for name in ("a.jpg", "b.jpg", "c.jpg")]
        loaded = load_sidecars(paths)
        assert list(loaded) == [paths[0]]
        assert loaded[paths[0]] == edited

    def test_load_sidecars_with_infinite_rating(self, tmp_path, edited):
        """One sidecar with an out-of-range number does not stop the others."""
        (tmp_path / "a.xmp").write_text(LIGHTROOM_PACKET.replace('xmp:Rating="3"', 'xmp:Rating="inf"'))
        XMPSidecar(tmp_path / "b.jpg").write(edited)
        paths = [str(tmp_path / "a.jpg"), str(tmp_path / "b.jpg")]
        loaded = load_sidecars(paths)
        assert loaded[paths[0]].rating == 5
        assert loaded[paths[1]] == edited
