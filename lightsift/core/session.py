"""
Photo session: the boundary layer tying scanning, sidecars, previews,
auto-enhance and export together for one open folder.

Shared state (the file list and the per-image adjustments) lives in
SynchronizedRegistry instances injected at construction, each guarded by its
own lock. Pixel work always happens outside those locks.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar, Union
import logging

from lightsift.config import get_config_value, get_default_config, get_thumbnail_dir
from lightsift.errors import FileNotFoundInSession, LightsiftError
from lightsift.io.export import ExportOptions, ExportResult, export_image
from lightsift.io.filesystem import ImageFile, scan_directory
from lightsift.io.raw import RasterSource
from lightsift.io.thumbnail import generate_thumbnail
from lightsift.models import AdjustmentParameters, Flag, clamp_rating
from lightsift.preview.cache import PreviewCache
from lightsift.preview.preview_service import PreviewService
from lightsift.processing.auto_enhance import AiSuggestion, AutoEnhancer, blend
from lightsift.processing.geometry import resize_to_fit
from lightsift.processing.pipeline import TransformPipeline
from lightsift.utils.logging import StructuredLogger
from lightsift.utils.xmp_sidecar import XMPSidecar, load_sidecars, stored_form

logger = logging.getLogger(__name__)
batch_logger = StructuredLogger(__name__)

K = TypeVar('K')
V = TypeVar('V')


class SynchronizedRegistry(Generic[K, V]):
    """Dictionary guarded by a single lock"""

    def __init__(self):
        self._items: Dict[K, V] = {}
        self._lock = threading.RLock()

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        with self._lock:
            return self._items.get(key, default)

    def set(self, key: K, value: V):
        with self._lock:
            self._items[key] = value

    def replace_all(self, items: Dict[K, V]):
        with self._lock:
            self._items = dict(items)

    def update(self, key: K, func: Callable[[Optional[V]], V]) -> V:
        """Read-modify-write a single entry as one critical section"""
        with self._lock:
            value = func(self._items.get(key))
            self._items[key] = value
            return value

    def snapshot(self) -> Dict[K, V]:
        with self._lock:
            return dict(self._items)

    def __contains__(self, key: K) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@dataclass
class FolderContents:
    """Result of opening a folder"""
    path: str
    files: List[ImageFile]
    edit_states: Dict[str, AdjustmentParameters]
    thumbnail_dir: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'files': [f.to_dict() for f in self.files],
            'edit_states': {k: v.to_dict() for k, v in self.edit_states.items()},
            'thumbnail_dir': self.thumbnail_dir,
        }


@dataclass
class BatchItemResult:
    """One result-or-error record of a batch operation"""
    file_id: str
    success: bool
    suggestion: Optional[AiSuggestion] = None
    params: Optional[AdjustmentParameters] = None
    error: Optional[str] = None
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'file_id': self.file_id,
            'success': self.success,
            'suggestion': self.suggestion.to_dict() if self.suggestion else None,
            'params': self.params.to_dict() if self.params else None,
            'error': self.error,
            'processing_time': self.processing_time,
        }


class PhotoSession:
    """Operations on the images of one open folder"""

    def __init__(self,
                 config: Optional[Dict[str, Any]] = None,
                 files: Optional[SynchronizedRegistry] = None,
                 edit_states: Optional[SynchronizedRegistry] = None,
                 source: Optional[RasterSource] = None,
                 pipeline: Optional[TransformPipeline] = None,
                 preview_service: Optional[PreviewService] = None,
                 enhancer: Optional[AutoEnhancer] = None):
        """
        Initialize session

        Args:
            config: Configuration dictionary (defaults if omitted)
            files: Registry of file id -> ImageFile
            edit_states: Registry of file id -> AdjustmentParameters
            source: Raster source for decoding
            pipeline: Transform pipeline for rendering
            preview_service: Preview renderer with its cache
            enhancer: Auto-enhance analyzer
        """
        self.config = config or get_default_config()
        self.files = files if files is not None else SynchronizedRegistry()
        self.edit_states = edit_states if edit_states is not None else SynchronizedRegistry()
        self.source = source or RasterSource(
            get_config_value(self.config, 'raw.min_preview_bytes', 10000))
        self.pipeline = pipeline or TransformPipeline.from_config(self.config)
        self.preview_service = preview_service or PreviewService(
            source=self.source,
            pipeline=self.pipeline,
            cache=PreviewCache(get_config_value(self.config, 'preview.cache_capacity', 10)),
            max_size=get_config_value(self.config, 'preview.max_size', 1600),
            jpeg_quality=get_config_value(self.config, 'preview.jpeg_quality', 85),
        )
        self.enhancer = enhancer or AutoEnhancer()
        self.analysis_max_size = get_config_value(self.config, 'analysis.max_size', 1024)
        self.thumbnail_dir = get_thumbnail_dir(self.config)
        self.thumbnail_size = get_config_value(self.config, 'thumbnails.size', 256)

    def _require_file(self, file_id: str) -> ImageFile:
        image_file = self.files.get(file_id)
        if image_file is None:
            raise FileNotFoundInSession(file_id)
        return image_file

    def _current_edits(self, file_id: str) -> AdjustmentParameters:
        return self.edit_states.get(file_id) or AdjustmentParameters()

    def _persist(self, image_file: ImageFile, params: AdjustmentParameters):
        if not XMPSidecar(image_file.path).write(params):
            raise LightsiftError(f"Failed to write sidecar for {image_file.path}")

    def open_folder(self, path: Union[str, Path]) -> FolderContents:
        """
        Scan a folder and load existing sidecars, replacing session state

        Raises:
            ValueError: if the path is missing or not a directory
        """
        files = scan_directory(path)

        self.files.replace_all({})
        self.edit_states.replace_all({})
        edit_states = self.register_files(files)

        logger.info(f"Opened {path}: {len(files)} files, {len(edit_states)} with sidecars")
        return FolderContents(
            path=str(path),
            files=files,
            edit_states=edit_states,
            thumbnail_dir=str(self.thumbnail_dir),
        )

    def register_files(self, files: Iterable[ImageFile]) -> Dict[str, AdjustmentParameters]:
        """Add files to the session along with any sidecar adjustments found"""
        files = list(files)
        by_path = load_sidecars(f.path for f in files)
        edit_states = {f.id: by_path[f.path] for f in files if f.path in by_path}

        for image_file in files:
            self.files.set(image_file.id, image_file)
        for file_id, params in edit_states.items():
            self.edit_states.set(file_id, params)
        return edit_states

    def get_thumbnail(self, file_id: str) -> Path:
        image_file = self._require_file(file_id)
        return generate_thumbnail(image_file.path, file_id,
                                  thumb_dir=self.thumbnail_dir,
                                  size=self.thumbnail_size,
                                  source=self.source)

    def get_preview(self, file_id: str, params: Optional[AdjustmentParameters] = None,
                    max_size: Optional[int] = None) -> bytes:
        """
        Render a JPEG preview

        Args:
            file_id: Image to preview
            params: Adjustments to show (the stored ones if omitted)
            max_size: Longest preview side
        """
        image_file = self._require_file(file_id)
        params = params if params is not None else self._current_edits(file_id)
        return self.preview_service.get_preview(image_file.path, params, max_size)

    def save_edits(self, file_id: str, params: AdjustmentParameters) -> AdjustmentParameters:
        """Persist edits; the stored copy is the one the sidecar reads back as"""
        image_file = self._require_file(file_id)
        params = stored_form(params)
        self._persist(image_file, params)
        self.edit_states.set(file_id, params)
        return params

    def _update_edits(self, file_id: str, **changes) -> AdjustmentParameters:
        def apply(current: Optional[AdjustmentParameters]) -> AdjustmentParameters:
            data = (current or AdjustmentParameters()).to_dict()
            data.update(changes)
            return stored_form(AdjustmentParameters.from_dict(data))

        updated = self.edit_states.update(file_id, apply)
        image_file = self.files.get(file_id)
        if image_file is not None:
            self._persist(image_file, updated)
        return updated

    def set_rating(self, file_id: str, rating: int) -> AdjustmentParameters:
        return self._update_edits(file_id, rating=clamp_rating(rating))

    def set_flag(self, file_id: str, flag: Union[str, Flag]) -> AdjustmentParameters:
        return self._update_edits(file_id, flag=Flag.parse(flag).value)

    def export_images(self, file_ids: Iterable[str], destination: Union[str, Path],
                      options: Optional[ExportOptions] = None) -> List[ExportResult]:
        """Export each image with its stored edits; one result per id."""
        options = options or ExportOptions.from_config(self.config)
        results = []
        for file_id in file_ids:
            image_file = self.files.get(file_id)
            if image_file is None:
                results.append(ExportResult(success=False, source_id=file_id,
                                            error="File not found"))
                continue
            results.append(export_image(image_file.path, file_id, destination,
                                        self._current_edits(file_id), options,
                                        source=self.source, pipeline=self.pipeline))
        return results

    def ai_analyze(self, file_id: str) -> AiSuggestion:
        """
        Suggest adjustments for an image

        Raises:
            FileNotFoundInSession: for an unknown id
            DecodeError: if the image cannot be decoded
        """
        image_file = self._require_file(file_id)
        raster = resize_to_fit(self.source.load(image_file.path), self.analysis_max_size)
        return self.enhancer.analyze(raster)

    def ai_auto_enhance(self, file_id: str, strength: float) -> AdjustmentParameters:
        """Blend the suggestion into the stored edits, persist and return them"""
        image_file = self._require_file(file_id)
        suggestion = self.ai_analyze(file_id)
        new_edits = stored_form(blend(self._current_edits(file_id), suggestion, strength))
        self._persist(image_file, new_edits)
        self.edit_states.set(file_id, new_edits)
        return new_edits

    def _run_batch(self, file_ids: List[str], func: Callable[[str], BatchItemResult],
                   workers: Optional[int] = None,
                   progress: Optional[Callable[[BatchItemResult], None]] = None) -> List[BatchItemResult]:
        results: Dict[str, BatchItemResult] = {}
        log = batch_logger.bind(operation=func.__name__, workers=workers or 1)

        def run(file_id: str) -> BatchItemResult:
            start = time.time()
            try:
                result = func(file_id)
            except Exception as e:
                logger.error(f"Batch item {file_id} failed: {e}")
                result = BatchItemResult(file_id=file_id, success=False, error=str(e))
            result.processing_time = time.time() - start
            return result

        with ThreadPoolExecutor(max_workers=workers or 1) as executor:
            future_to_id = {executor.submit(run, file_id): file_id for file_id in file_ids}
            for future in as_completed(future_to_id):
                result = future.result()
                results[future_to_id[future]] = result
                if progress:
                    progress(result)

        ordered = [results[file_id] for file_id in file_ids]
        log.info("Batch finished", items=len(ordered),
                 failed=sum(1 for r in ordered if not r.success))
        return ordered

    def analyze_batch(self, file_ids: Iterable[str], workers: Optional[int] = None,
                      progress: Optional[Callable[[BatchItemResult], None]] = None) -> List[BatchItemResult]:
        """Analyze many images; failures are reported per item in input order"""
        def analyze(file_id: str) -> BatchItemResult:
            return BatchItemResult(file_id=file_id, success=True,
                                   suggestion=self.ai_analyze(file_id))
        return self._run_batch(list(file_ids), analyze, workers, progress)

    def auto_enhance_batch(self, file_ids: Iterable[str], strength: float,
                           workers: Optional[int] = None,
                           progress: Optional[Callable[[BatchItemResult], None]] = None) -> List[BatchItemResult]:
        """Auto-enhance many images; failures are reported per item in input order"""
        def enhance(file_id: str) -> BatchItemResult:
            return BatchItemResult(file_id=file_id, success=True,
                                   params=self.ai_auto_enhance(file_id, strength))
        return self._run_batch(list(file_ids), enhance, workers, progress)
