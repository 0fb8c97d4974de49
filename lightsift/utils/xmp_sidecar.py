"""
XMP sidecar file support utilities.

Adjustments are stored as attributes of a single rdf:Description using the
Camera Raw settings vocabulary where one exists, so other photo applications
pick up rating, exposure, white balance and friends. The culling flag lives in
a Lightsift namespace.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union
import xml.etree.ElementTree as ET
from xml.dom import minidom

from lightsift.io.filesystem import xmp_path_for
from lightsift.models import AdjustmentParameters, CropRect, Rotation

logger = logging.getLogger(__name__)

MAX_SIDECAR_BYTES = 1024 * 1024

# Exposure is written the way Camera Raw writes it: signed, two decimals
EXPOSURE_DECIMALS = 2

# XMP namespaces
XMP_NAMESPACES = {
    'x': 'adobe:ns:meta/',
    'rdf': 'http://www.w3.org/1999/02/22-rdf-syntax-ns#',
    'xmp': 'http://ns.adobe.com/xap/1.0/',
    'crs': 'http://ns.adobe.com/camera-raw-settings/1.0/',
    'lightsift': 'http://ns.lightsift.app/1.0/',
}

RDF = '{%s}' % XMP_NAMESPACES['rdf']
XMP = '{%s}' % XMP_NAMESPACES['xmp']
CRS = '{%s}' % XMP_NAMESPACES['crs']
LIGHTSIFT = '{%s}' % XMP_NAMESPACES['lightsift']

# Numeric attribute -> AdjustmentParameters field
NUMERIC_ATTRIBUTES = {
    CRS + 'Exposure2012': 'exposure',
    CRS + 'Contrast2012': 'contrast',
    CRS + 'Highlights2012': 'highlights',
    CRS + 'Shadows2012': 'shadows',
    CRS + 'Temperature': 'white_balance_temp',
    CRS + 'Tint': 'white_balance_tint',
    CRS + 'Saturation': 'saturation',
    CRS + 'Vibrance': 'vibrance',
    CRS + 'Sharpness': 'sharpening_amount',
    CRS + 'SharpenRadius': 'sharpening_radius',
    CRS + 'LuminanceSmoothing': 'noise_reduction',
    CRS + 'CropAngle': 'straighten_angle',
}

# Accepted on read only
LEGACY_ATTRIBUTES = {
    CRS + 'Exposure': 'exposure',
    CRS + 'Contrast': 'contrast',
}

# EXIF orientation code <-> clockwise rotation
ORIENTATION_TO_ROTATION = {'1': Rotation.DEG_0, '6': Rotation.DEG_90,
                           '3': Rotation.DEG_180, '8': Rotation.DEG_270}
ROTATION_TO_ORIENTATION = {v: k for k, v in ORIENTATION_TO_ROTATION.items()}

CROP_ATTRIBUTES = {
    CRS + 'CropLeft': 'left',
    CRS + 'CropTop': 'top',
    CRS + 'CropRight': 'right',
    CRS + 'CropBottom': 'bottom',
}


def _format_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def parse_xmp(content: Union[str, bytes]) -> AdjustmentParameters:
    """
    Parse an XMP packet into adjustments

    Unknown attributes are ignored and unparsable values fall back to the
    field defaults.

    Raises:
        ValueError: if the packet exceeds the size limit
        xml.etree.ElementTree.ParseError: if the packet is not well-formed
    """
    if len(content) > MAX_SIDECAR_BYTES:
        raise ValueError("XMP too large")

    root = ET.fromstring(content)
    description = root if root.tag == RDF + 'Description' else root.find(f'.//{RDF}Description')
    if description is None:
        return AdjustmentParameters()

    attrs = description.attrib
    data: Dict[str, Any] = {}

    for attr, name in LEGACY_ATTRIBUTES.items():
        if attr in attrs:
            data[name] = attrs[attr]
    for attr, name in NUMERIC_ATTRIBUTES.items():
        if attr in attrs:
            data[name] = attrs[attr]

    if XMP + 'Rating' in attrs:
        data['rating'] = attrs[XMP + 'Rating']
    if CRS + 'Orientation' in attrs:
        data['rotation'] = ORIENTATION_TO_ROTATION.get(attrs[CRS + 'Orientation'].strip(),
                                                       Rotation.DEG_0)
    if LIGHTSIFT + 'Flag' in attrs:
        data['flag'] = attrs[LIGHTSIFT + 'Flag']

    if attrs.get(CRS + 'HasCrop', '').strip().lower() == 'true':
        data['crop'] = CropRect.from_dict({
            name: attrs[attr] for attr, name in CROP_ATTRIBUTES.items() if attr in attrs
        })

    return AdjustmentParameters.from_dict(data)


def stored_form(params: AdjustmentParameters) -> AdjustmentParameters:
    """The adjustments exactly as a sidecar write and read back yields them"""
    return replace(params, exposure=round(params.exposure, EXPOSURE_DECIMALS))


def build_xmp(params: AdjustmentParameters) -> str:
    """Serialize adjustments into an XMP packet"""
    for prefix, uri in XMP_NAMESPACES.items():
        ET.register_namespace(prefix, uri)

    root = ET.Element('{%s}xmpmeta' % XMP_NAMESPACES['x'])
    rdf_root = ET.SubElement(root, RDF + 'RDF')
    description = ET.SubElement(rdf_root, RDF + 'Description')
    description.set(RDF + 'about', '')

    description.set(XMP + 'Rating', str(params.rating))
    for attr, name in NUMERIC_ATTRIBUTES.items():
        value = getattr(params, name)
        if name == 'exposure':
            description.set(attr, f"{value:+.{EXPOSURE_DECIMALS}f}")
        else:
            description.set(attr, _format_number(value))

    description.set(CRS + 'Orientation', ROTATION_TO_ORIENTATION[params.rotation])

    if params.crop is not None:
        description.set(CRS + 'HasCrop', 'True')
        for attr, name in CROP_ATTRIBUTES.items():
            description.set(attr, _format_number(getattr(params.crop, name)))
    else:
        description.set(CRS + 'HasCrop', 'False')

    description.set(LIGHTSIFT + 'Flag', params.flag.value)

    return _prettify_xml(root)


def _prettify_xml(elem: ET.Element) -> str:
    """Return a pretty-printed XML string."""
    rough_string = ET.tostring(elem, encoding='unicode')
    reparsed = minidom.parseString(rough_string)
    return reparsed.toprettyxml(indent="  ", encoding=None)


class XMPSidecar:
    """Handles XMP sidecar file operations."""

    def __init__(self, image_path: Union[str, Path]):
        """Initialize with the path to the image file."""
        self.image_path = Path(image_path)
        self.sidecar_path = xmp_path_for(self.image_path)

    def exists(self) -> bool:
        """Check if XMP sidecar file exists."""
        return self.sidecar_path.is_file()

    def read(self) -> Optional[AdjustmentParameters]:
        """Read adjustments, or None if the sidecar is missing or unusable."""
        if not self.exists():
            return None

        try:
            if self.sidecar_path.stat().st_size > MAX_SIDECAR_BYTES:
                logger.warning(f"Ignoring oversized XMP sidecar {self.sidecar_path}")
                return None
            return parse_xmp(self.sidecar_path.read_bytes())
        except (OSError, ValueError, ET.ParseError) as e:
            logger.error(f"Failed to read XMP sidecar {self.sidecar_path}: {e}")
            return None

    def write(self, params: AdjustmentParameters) -> bool:
        """Write adjustments, replacing any existing sidecar."""
        try:
            self.sidecar_path.write_text(build_xmp(params), encoding='utf-8')
            return True
        except OSError as e:
            logger.error(f"Failed to write XMP sidecar {self.sidecar_path}: {e}")
            return False


def load_sidecars(image_paths: Iterable[Union[str, Path]]) -> Dict[str, AdjustmentParameters]:
    """
    Load adjustments for every image that has a readable sidecar

    Returns:
        Mapping of image path (as given) to adjustments
    """
    loaded = {}
    for image_path in image_paths:
        params = XMPSidecar(image_path).read()
        if params is not None:
            loaded[str(image_path)] = params
    logger.debug(f"Loaded {len(loaded)} XMP sidecars")
    return loaded
