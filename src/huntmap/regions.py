"""Region raster classification and world-tile region lookups."""

from __future__ import annotations

import logging
import warnings
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

import numpy as np
import rasterio
from rasterio.errors import NotGeoreferencedWarning, RasterioIOError

from huntmap.errors import FatalInputError, IssueLog, RecoverableRecordError
from huntmap.models import NOT_FOUND_REGION, RGB, RegionDefinition, WorldPosition

LOGGER = logging.getLogger("huntmap.regions")

UNCLASSIFIED = -1


@dataclass(frozen=True)
class RasterCalibration:
    """Placement of the region raster over the world tile grid."""

    center_x: int = 32598
    center_y: int = 32233
    vision_size: int = 2048


DEFAULT_CALIBRATION = RasterCalibration()


def parse_color(value: str) -> RGB:
    """Parse ``#RRGGBB`` (any case, leading ``#`` optional) into an RGB tuple."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ValueError(f"Invalid colour: {value!r}")
    try:
        packed = int(text, 16)
    except ValueError as exc:
        raise ValueError(f"Invalid colour: {value!r}") from exc
    return ((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF)


DEFAULT_REGIONS: tuple[RegionDefinition, ...] = (
    RegionDefinition("Thais and Surroundings", "thais", parse_color("#FFD800")),
    RegionDefinition(
        "Drillturtle Bridge, Swamp and Surroundings",
        "drillturtle_swamp",
        parse_color("#FF6A00"),
    ),
    RegionDefinition(
        "North Carlin, Hill and Orc Fortress",
        "northcarlin_hill_orcfortress",
        parse_color("#FA00FF"),
    ),
    RegionDefinition("POH, Fibula and Darashia", "poh_fibula_darashia", parse_color("#00E5FF")),
    RegionDefinition("Venore", "venore", parse_color("#0004FF")),
    RegionDefinition("Abdendriel and Hellgate", "abdendriel_hellgate", parse_color("#FCFFF9")),
    RegionDefinition(
        "Carlin, Ghost Island and Okolnir",
        "carlin_ghostisland_okolnir",
        parse_color("#7F0000"),
    ),
    RegionDefinition("Ankrahmun and Edron", "ankrahmun_edron", parse_color("#000000")),
    RegionDefinition("rookgaard", "rookgaard", parse_color("#19FF24")),
)


def image_to_world(
    px: float,
    py: float,
    z: int = 0,
    calibration: RasterCalibration = DEFAULT_CALIBRATION,
) -> WorldPosition:
    """Map a raster pixel to its absolute world tile."""
    half = calibration.vision_size / 2
    return WorldPosition(
        round(px + calibration.center_x - half),
        round(py + calibration.center_y - half),
        z,
    )


def world_to_image(
    pos: WorldPosition,
    calibration: RasterCalibration = DEFAULT_CALIBRATION,
) -> tuple[int, int]:
    """Map a world tile back to its raster pixel."""
    half = calibration.vision_size / 2
    return (
        round(pos.x - calibration.center_x + half),
        round(pos.y - calibration.center_y + half),
    )


class RegionIndex:
    """Read-only world tile to region lookup.

    Backed by a label raster aligned with the source image; only classified
    pixels count as keys. Lookups ignore the floor.
    """

    def __init__(
        self,
        labels: np.ndarray,
        catalog: Sequence[RegionDefinition],
        calibration: RasterCalibration = DEFAULT_CALIBRATION,
    ) -> None:
        self._labels = np.array(labels, dtype=np.int16, copy=True)
        self._labels.flags.writeable = False
        self.catalog = tuple(catalog)
        self.calibration = calibration

    @property
    def labels(self) -> np.ndarray:
        return self._labels

    def lookup(self, pos: WorldPosition | None) -> RegionDefinition | None:
        """Return the region owning ``pos`` or None when unclassified."""
        if pos is None:
            return None
        px, py = world_to_image(pos, self.calibration)
        height, width = self._labels.shape
        if not (0 <= px < width and 0 <= py < height):
            return None
        label = int(self._labels[py, px])
        if label == UNCLASSIFIED:
            return None
        return self.catalog[label]

    def __contains__(self, pos: object) -> bool:
        return isinstance(pos, WorldPosition) and self.lookup(pos) is not None

    def __len__(self) -> int:
        return int(np.count_nonzero(self._labels != UNCLASSIFIED))

    def items(self) -> Iterator[tuple[tuple[int, int], RegionDefinition]]:
        """Yield ``((x, y), region)`` for every classified tile in row order."""
        rows, cols = np.nonzero(self._labels != UNCLASSIFIED)
        for row, col in zip(rows.tolist(), cols.tolist()):
            pos = image_to_world(col, row, calibration=self.calibration)
            yield pos.planar(), self.catalog[int(self._labels[row, col])]

    def keys(self) -> Iterator[tuple[int, int]]:
        for key, _ in self.items():
            yield key

    def tile_counts(self) -> dict[str, int]:
        """Return classified tile counts keyed by region tag."""
        counts = np.bincount(
            self._labels[self._labels != UNCLASSIFIED].ravel(),
            minlength=len(self.catalog),
        )
        return {region.tag: int(count) for region, count in zip(self.catalog, counts)}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegionIndex):
            return NotImplemented
        return (
            self.catalog == other.catalog
            and self.calibration == other.calibration
            and np.array_equal(self._labels, other._labels)
        )

    __hash__ = None  # type: ignore[assignment]


def _color_lookup(catalog: Sequence[RegionDefinition]) -> dict[int, int]:
    """Map packed colours to catalog positions; the first definition wins."""
    lookup: dict[int, int] = {}
    for label, region in enumerate(catalog):
        r, g, b = region.color_key
        packed = (r << 16) | (g << 8) | b
        if packed in lookup:
            LOGGER.warning(
                "Region %s reuses colour %s of %s; ignoring it.",
                region.tag,
                region.color_hex,
                catalog[lookup[packed]].tag,
            )
            continue
        lookup[packed] = label
    return lookup


def _classify_rows(rows: np.ndarray, lookup: dict[int, int]) -> np.ndarray:
    """Label one row band of an RGBA image."""
    red = rows[..., 0].astype(np.uint32)
    green = rows[..., 1].astype(np.uint32)
    blue = rows[..., 2].astype(np.uint32)
    packed = (red << 16) | (green << 8) | blue
    opaque = rows[..., 3] != 0
    labels = np.full(packed.shape, UNCLASSIFIED, dtype=np.int16)
    for color, label in lookup.items():
        labels[(packed == color) & opaque] = label
    return labels


def _coerce_rgba(image: np.ndarray) -> np.ndarray:
    data = np.asarray(image)
    if data.ndim != 3 or data.shape[2] not in (3, 4):
        raise ValueError(f"Region raster must be RGB or RGBA, got shape {data.shape}.")
    if data.shape[2] == 3:
        alpha = np.full(data.shape[:2] + (1,), 255, dtype=data.dtype)
        data = np.concatenate([data, alpha], axis=2)
    return data


def build_region_index(
    image: np.ndarray,
    catalog: Sequence[RegionDefinition] = DEFAULT_REGIONS,
    calibration: RasterCalibration = DEFAULT_CALIBRATION,
    *,
    jobs: int = 1,
) -> RegionIndex:
    """Classify every opaque raster pixel against the region palette."""
    data = _coerce_rgba(image)
    height, width = data.shape[:2]
    size = calibration.vision_size
    if (height, width) != (size, size):
        raise ValueError(f"Region raster must be {size}x{size}, got {width}x{height}.")
    lookup = _color_lookup(catalog)
    shard_count = max(1, min(int(jobs), height))
    bands = [
        (int(band[0]), int(band[-1]) + 1)
        for band in np.array_split(np.arange(height), shard_count)
        if band.size
    ]
    if shard_count == 1:
        parts = [_classify_rows(data, lookup)]
    else:
        with ThreadPoolExecutor(max_workers=shard_count) as executor:
            parts = list(
                executor.map(lambda band: _classify_rows(data[band[0] : band[1]], lookup), bands)
            )
    index = RegionIndex(np.concatenate(parts, axis=0), catalog, calibration)
    LOGGER.info("Classified %d raster pixels into %d regions.", len(index), len(catalog))
    return index


def lookup_region(index: RegionIndex, pos: WorldPosition | None) -> RegionDefinition | None:
    """Return the region for a world tile, or None when it is unclassified."""
    return index.lookup(pos)


def region_name_for(index: RegionIndex, pos: WorldPosition | None) -> str:
    """Return the region display name or the not-found sentinel."""
    region = index.lookup(pos)
    return region.name if region is not None else NOT_FOUND_REGION


def _expand_palette(dataset: rasterio.io.DatasetReader, path: Path) -> np.ndarray:
    """Expand a single-band indexed image through its colormap into RGBA."""
    try:
        colormap = dataset.colormap(1)
    except ValueError as exc:
        raise FatalInputError(
            "region raster",
            path,
            "expected RGB(A) bands or a palette image, found 1 band without a colormap",
        ) from exc
    lut = np.zeros((256, 4), dtype=np.uint8)
    for index, entry in colormap.items():
        if 0 <= index < 256:
            # Entries without alpha are opaque.
            lut[index] = (tuple(entry) + (255,))[:4]
    return lut[dataset.read(1).astype(np.uint8, copy=False)]


def load_region_raster(
    path: Path,
    calibration: RasterCalibration = DEFAULT_CALIBRATION,
) -> np.ndarray:
    """Read the region raster into a (height, width, 4) uint8 array."""
    if not Path(path).exists():
        raise FatalInputError("region raster", path, "file not found")
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with rasterio.open(path) as dataset:
                if dataset.count == 1:
                    data = _expand_palette(dataset, path)
                elif dataset.count < 3:
                    raise FatalInputError(
                        "region raster",
                        path,
                        f"expected RGB(A) bands, found {dataset.count}",
                    )
                else:
                    bands = dataset.read(indexes=list(range(1, min(dataset.count, 4) + 1)))
                    data = np.transpose(bands, (1, 2, 0)).astype(np.uint8, copy=False)
    except RasterioIOError as exc:
        raise FatalInputError("region raster", path, f"not a readable image: {exc}") from exc
    data = _coerce_rgba(data)
    size = calibration.vision_size
    if data.shape[:2] != (size, size):
        raise FatalInputError(
            "region raster",
            path,
            f"expected {size}x{size} pixels, found {data.shape[1]}x{data.shape[0]}",
        )
    return data


def _parse_level_variation(value: str | None) -> int:
    if not value:
        return 0
    return int(value)


def parse_region_catalog(
    text: str | bytes,
    issues: IssueLog | None = None,
) -> tuple[RegionDefinition, ...]:
    """Parse a ``regions.xml`` document into region definitions."""
    root = ET.fromstring(text)
    regions: list[RegionDefinition] = []
    for element in root.iter("region"):
        tag = element.get("name", "")
        name = element.get("description") or tag
        try:
            regions.append(
                RegionDefinition(
                    name=name,
                    tag=tag or name,
                    color_key=parse_color(element.get("color", "")),
                    recommended_level=element.get("recommended-level") or None,
                    level_variation=_parse_level_variation(element.get("levelvar")),
                )
            )
        except ValueError as exc:
            error = RecoverableRecordError("region", name or "?", str(exc))
            if issues is not None:
                issues.record(error)
            else:
                LOGGER.warning("%s", error)
    return tuple(regions)


def load_region_catalog(
    path: Path,
    issues: IssueLog | None = None,
) -> tuple[RegionDefinition, ...]:
    """Load a region palette from disk."""
    try:
        text = Path(path).read_bytes()
    except OSError as exc:
        raise FatalInputError("region catalog", path, str(exc)) from exc
    try:
        return parse_region_catalog(text, issues)
    except ET.ParseError as exc:
        raise FatalInputError("region catalog", path, f"malformed XML: {exc}") from exc


def format_regions(regions: Iterable[RegionDefinition]) -> str:
    """Format a palette for terminal output."""
    lines = []
    for region in regions:
        level = f" level {region.recommended_level}" if region.recommended_level else ""
        lines.append(f"{region.color_hex}  {region.tag}: {region.name}{level}")
    return "\n".join(lines)
