"""Batched, retrying upload of extracted images to object storage"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from ..config import Settings, settings as default_settings
from ..exceptions import UploadTimeoutError
from ..models.document import ImageReference
from ..models.upload import (
    UploadedImage,
    UploadOptions,
    UploadProgress,
    UploadStage,
    UploadStrategy,
)
from ..utils.batching import count_batches, iter_batches
from ..utils.helpers import build_material_key, format_bytes, generate_image_filename
from ..utils.placeholders import create_fallback_placeholder
from ..utils.retry import RetryPolicy, run_with_retry
from ..utils.timing import Clock, SystemClock, race_with_timeout
from .image_optimizer import ImageOptimizer
from .storage import ObjectStorageClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadProgress], None]


def _pick(value, default):
    return default if value is None else value


@dataclass(frozen=True)
class UploadPlan:
    """Concrete settings for one upload_batch call"""
    strategy: UploadStrategy
    batch_size: int
    batch_delay_seconds: float
    batch_timeout_seconds: Optional[float]
    optimize: bool
    compression_threshold: int
    max_image_dimension: int
    retry: RetryPolicy


class _ProgressTracker:
    """Builds progress snapshots and pushes them to the caller's sink"""

    def __init__(
        self,
        sink: Optional[ProgressCallback],
        clock: Clock,
        total: int,
        total_batches: int
    ):
        self.sink = sink
        self.clock = clock
        self.total = total
        self.total_batches = total_batches
        self.current_batch = 0
        self.started_at = clock.monotonic()
        self.outcomes: Dict[int, bool] = {}  # index -> is_placeholder

    @property
    def failed(self) -> int:
        return sum(1 for is_placeholder in self.outcomes.values() if is_placeholder)

    def record(self, index: int, is_placeholder: bool) -> None:
        self.outcomes[index] = is_placeholder
        self.emit(UploadStage.UPLOADING, f"Processed image {index + 1}/{self.total}")

    def emit(self, stage: UploadStage, operation: str) -> None:
        if self.sink is None:
            return
        completed = len(self.outcomes)
        failed = self.failed
        snapshot = UploadProgress(
            stage=stage,
            completed=completed,
            total=self.total,
            percentage=round(completed / self.total * 100, 1) if self.total else 100.0,
            current_batch=self.current_batch,
            total_batches=self.total_batches,
            failed_count=failed,
            success_count=completed - failed,
            estimated_seconds_remaining=self._estimate_remaining(completed),
            current_operation=operation
        )
        try:
            self.sink(snapshot)
        except Exception as e:
            logger.warning(f"Progress callback raised, ignoring: {e}")

    def finish(self) -> None:
        self.current_batch = self.total_batches
        failed = self.failed
        stage = UploadStage.FAILED if failed else UploadStage.COMPLETED
        self.emit(stage, f"Upload completed: {len(self.outcomes) - failed} successful, {failed} failed")

    def _estimate_remaining(self, completed: int) -> Optional[int]:
        if completed == 0:
            return None
        elapsed = self.clock.monotonic() - self.started_at
        return round(elapsed / completed * (self.total - completed))


class ImageUploadOrchestrator:
    """
    Upload extracted images with bounded concurrency, retries and fallbacks

    Small jobs (few images, none large) use the simple strategy: fixed-size
    concurrent batches with per-upload retry and timeout. Larger jobs use the
    enhanced strategy, which also optimizes images before upload and races
    each batch against a batch-wide timer. Either way the caller gets exactly
    one UploadedImage per uploadable input, in input order.
    """

    def __init__(
        self,
        storage: ObjectStorageClient,
        optimizer: Optional[ImageOptimizer] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        config: Optional[Settings] = None
    ):
        self.storage = storage
        self.optimizer = optimizer or ImageOptimizer()
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.config = config or default_settings

    def select_strategy(self, images: Sequence[ImageReference]) -> UploadStrategy:
        if len(images) > self.config.large_batch_image_count:
            return UploadStrategy.ENHANCED
        if any(img.size > self.config.large_image_bytes for img in images):
            return UploadStrategy.ENHANCED
        return UploadStrategy.SIMPLE

    def plan_for(self, images: Sequence[ImageReference], options: UploadOptions) -> UploadPlan:
        """Resolve per-call options against the selected strategy's defaults"""
        cfg = self.config
        strategy = self.select_strategy(images)
        enhanced = strategy == UploadStrategy.ENHANCED

        timeout_ms = _pick(options.timeout_ms, cfg.enhanced_timeout_ms if enhanced else cfg.simple_timeout_ms)
        batch_timeout_seconds = None
        if enhanced:
            batch_timeout_ms = _pick(options.batch_timeout_ms, timeout_ms * cfg.batch_timeout_factor)
            batch_timeout_seconds = batch_timeout_ms / 1000

        return UploadPlan(
            strategy=strategy,
            batch_size=_pick(options.batch_size, cfg.enhanced_batch_size if enhanced else cfg.simple_batch_size),
            batch_delay_seconds=_pick(
                options.batch_delay_ms,
                cfg.enhanced_batch_delay_ms if enhanced else cfg.simple_batch_delay_ms
            ) / 1000,
            batch_timeout_seconds=batch_timeout_seconds,
            optimize=enhanced,
            compression_threshold=_pick(options.compression_threshold, cfg.compression_threshold),
            max_image_dimension=_pick(options.max_image_dimension, cfg.max_image_dimension),
            retry=RetryPolicy(
                max_attempts=_pick(options.max_retries, cfg.upload_max_retries),
                timeout_seconds=timeout_ms / 1000,
                base_delay_seconds=_pick(options.retry_base_delay_ms, cfg.retry_base_delay_ms) / 1000,
                max_delay_seconds=_pick(options.retry_max_delay_ms, cfg.retry_max_delay_ms) / 1000,
                jitter_seconds=_pick(options.retry_jitter_ms, cfg.retry_jitter_ms) / 1000
            )
        )

    async def upload_batch(
        self,
        images: Sequence[ImageReference],
        material_id: str,
        options: Optional[UploadOptions] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> List[UploadedImage]:
        """
        Upload images under ``materials/{material_id}/``

        References without bytes are left out; every other reference yields
        exactly one UploadedImage (a real URL or a placeholder) whose index is
        its position among the uploadable references. This method does not
        raise.

        Args:
            images: Image references from extraction
            material_id: Destination namespace
            options: Per-call overrides of the strategy defaults
            on_progress: Sink for progress snapshots; may be called any number
                of times and `completed` is not guaranteed to increase

        Returns:
            Uploaded images sorted by index
        """
        uploadable = [img for img in images if img.has_bytes]
        skipped = len(images) - len(uploadable)
        if skipped:
            logger.warning(f"Skipping {skipped} image references without data")
        if not uploadable:
            return []

        results: Dict[int, UploadedImage] = {}
        tracker: Optional[_ProgressTracker] = None
        try:
            plan = self.plan_for(uploadable, options or UploadOptions())
            total_batches = count_batches(len(uploadable), plan.batch_size)
            tracker = _ProgressTracker(on_progress, self.clock, len(uploadable), total_batches)
            logger.info(
                f"Starting {plan.strategy.value} upload of {len(uploadable)} images "
                f"(batch size: {plan.batch_size}, {total_batches} batches)"
            )
            await self._run(plan, uploadable, material_id, results, tracker)
        except Exception as e:
            logger.error(f"Image upload aborted, using placeholders for remaining images: {e}")

        for index, image_ref in enumerate(uploadable):
            if index not in results:
                results[index] = self._fallback(image_ref, index)
                if tracker is not None:
                    tracker.outcomes[index] = True

        ordered = [results[index] for index in sorted(results)]
        if tracker is not None:
            tracker.finish()

        failed = sum(1 for r in ordered if r.is_placeholder)
        logger.info(f"Upload complete: {len(ordered) - failed} successful, {failed} failed out of {len(ordered)} total")
        return ordered

    async def _run(
        self,
        plan: UploadPlan,
        uploadable: List[ImageReference],
        material_id: str,
        results: Dict[int, UploadedImage],
        tracker: _ProgressTracker
    ) -> None:
        tracker.emit(UploadStage.PREPARING, "Preparing images for upload...")

        for batch_number, (start, batch) in enumerate(iter_batches(uploadable, plan.batch_size), start=1):
            tracker.current_batch = batch_number
            logger.info(
                f"Processing batch {batch_number}/{tracker.total_batches} "
                f"(images {start + 1}-{start + len(batch)})"
            )
            tracker.emit(UploadStage.UPLOADING, f"Uploading batch {batch_number}/{tracker.total_batches}...")

            for result in await self._process_batch(plan, batch, start, material_id, tracker):
                results[result.index] = result

            if start + len(batch) < len(uploadable) and plan.batch_delay_seconds > 0:
                logger.debug(f"Waiting {plan.batch_delay_seconds:.1f}s before next batch")
                await self.clock.sleep(plan.batch_delay_seconds)

    async def _process_batch(
        self,
        plan: UploadPlan,
        batch: Sequence[ImageReference],
        start: int,
        material_id: str,
        tracker: _ProgressTracker
    ) -> List[UploadedImage]:
        uploads = asyncio.gather(*[
            self._upload_one(plan, image_ref, start + offset, material_id, tracker)
            for offset, image_ref in enumerate(batch)
        ])
        if plan.batch_timeout_seconds is None:
            return await uploads

        try:
            return await race_with_timeout(
                uploads, plan.batch_timeout_seconds, self.clock, f"Batch starting at image {start + 1}"
            )
        except UploadTimeoutError as e:
            logger.warning(f"{e}; using placeholders for the whole batch")
            fallbacks = [self._fallback(image_ref, start + offset) for offset, image_ref in enumerate(batch)]
            for fallback in fallbacks:
                tracker.outcomes[fallback.index] = True
            tracker.emit(UploadStage.UPLOADING, f"Batch {tracker.current_batch} timed out")
            return fallbacks

    async def _upload_one(
        self,
        plan: UploadPlan,
        image_ref: ImageReference,
        index: int,
        material_id: str,
        tracker: _ProgressTracker
    ) -> UploadedImage:
        """Optimize, name and upload one image; any failure becomes a placeholder"""
        logger.debug(
            f"Starting upload for image {index + 1} "
            f"(slide {image_ref.slide_number}, {format_bytes(image_ref.size)})"
        )
        try:
            data, mime_type = image_ref.image_bytes, image_ref.mime_type
            if image_ref.needs_conversion:
                data, mime_type = await self.optimizer.rasterize(data, mime_type)
            if plan.optimize:
                data, mime_type = await self.optimizer.optimize(
                    data, mime_type, plan.compression_threshold, plan.max_image_dimension
                )

            filename = generate_image_filename(image_ref.slide_number, index, mime_type)
            key = build_material_key(material_id, filename)
            url = await run_with_retry(
                lambda: self.storage.put(key, data, mime_type),
                policy=plan.retry,
                clock=self.clock,
                rng=self.rng,
                label=f"Upload of {filename}"
            )
            result = UploadedImage(
                url=url,
                title=self._title_for(image_ref),
                original_filename=image_ref.filename,
                slide_number=image_ref.slide_number,
                index=index,
                storage_key=key
            )
        except Exception as e:
            logger.error(f"Failed to upload image {index + 1} (slide {image_ref.slide_number}): {e}")
            result = self._fallback(image_ref, index)

        tracker.record(index, result.is_placeholder)
        return result

    @staticmethod
    def _title_for(image_ref: ImageReference) -> str:
        return image_ref.description or f"Image from Slide {image_ref.slide_number}"

    def _fallback(self, image_ref: ImageReference, index: int) -> UploadedImage:
        title = self._title_for(image_ref)
        return UploadedImage(
            url=create_fallback_placeholder(title),
            title=title,
            original_filename=image_ref.filename,
            slide_number=image_ref.slide_number,
            index=index,
            is_placeholder=True
        )
