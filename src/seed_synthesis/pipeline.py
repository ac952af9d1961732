"""Seed synthesis pipeline.

    SeedSpecification
        → ModalityTransformers (fresh SynthesisContext per call)
        → PostProcessor (blur, concentration mapping)
        → FieldAssembler
        → BoundaryMaskGenerator (only when boundary.enabled)
        → SynthesisResult
        → RenderTargetBootstrapper (SeedPipeline.reseed)

Concurrency:
    ``SeedSynthesizer.synthesize`` is a coroutine; the only await inside is
    the image decode. ``submit`` wraps a call in a task and cancels the one
    still pending, so the newest request always wins.

Usage:
    config = load_seed_config("configs/seed.v1.yaml")
    pipeline = SeedPipeline(SeedSynthesizer(config))
    state = SolverState.create(config.canvas.width, config.canvas.height)
    outcome = asyncio.run(pipeline.reseed({"modality": "circle", "radius": 80}, state))
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set, Union

import numpy as np
from pydantic import BaseModel

from src.boundary import BoundaryMask, BoundaryMaskGenerator
from src.boundary.mask_generator import BoundaryProcessor
from src.render_targets import RenderTargetBootstrapper, SolverState
from src.utils.logging_config import pop_context, push_context
from src.utils.validators import SeedConfigV1, SeedModality, parse_seed_spec

from .context import SynthesisContext
from .errors import SeedSynthesisError
from .field import ConcentrationField, FieldAssembler
from .fonts import FontLibrary
from .postprocess import PostProcessor
from .transformers import rasterize_seed

logger = logging.getLogger(__name__)

SeedInput = Union[Dict[str, Any], BaseModel]


@dataclass
class SynthesisResult:
    field: ConcentrationField
    boundary_mask: Optional[BoundaryMask]
    enable_boundary: bool
    falloff: float
    modality: str = ''
    grayscale: bool = False
    blur_strategy: str = 'none'
    raster: Optional[np.ndarray] = None


@dataclass
class SeedOutcome:
    """What happened to a reseed request."""
    result: Optional[SynthesisResult] = None
    error: Optional[SeedSynthesisError] = None
    superseded: bool = False

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None and not self.superseded


class SeedSynthesizer:
    """Turn seed specifications into concentration fields and boundary masks.

    Parameters
    ----------
    config : SeedConfigV1
        Validated seed configuration
    fonts : FontLibrary, optional
        Custom font holder; loaded from ``config.fonts.custom_font_path``
        when omitted
    boundary_processor : callable, optional
        Computed-mask collaborator (defaults to create_boundary_mask)
    """

    def __init__(
        self,
        config: SeedConfigV1,
        fonts: Optional[FontLibrary] = None,
        boundary_processor: Optional[BoundaryProcessor] = None
    ):
        self.config = config
        self.fonts = fonts if fonts is not None else FontLibrary.from_path(config.fonts.custom_font_path)
        self.postprocessor = PostProcessor(config.postprocess)
        self.assembler = FieldAssembler()
        self.boundary = BoundaryMaskGenerator(config.boundary, boundary_processor)
        self._pending: Optional[asyncio.Task] = None
        self._superseded: Set[asyncio.Task] = set()

    def new_context(self) -> SynthesisContext:
        return SynthesisContext.create(self.config, fonts=self.fonts)

    async def synthesize(
        self,
        spec: SeedInput,
        boundary_overlay: Optional[np.ndarray] = None
    ) -> SynthesisResult:
        """Run the full pipeline for one seed.

        Raises
        ------
        MissingImageSourceError
            Image modality with no image
        ImageLoadError
            Image decode failure
        """
        seed = parse_seed_spec(spec)
        push_context(modality=seed.modality)
        try:
            ctx = self.new_context()
            await rasterize_seed(ctx, seed)

            pixels, seed_channel, strategy = self.postprocessor.process(ctx.surface.get_pixels())
            field_ = self.assembler.assemble(seed_channel)

            if self.config.boundary.enabled:
                if boundary_overlay is None and seed.modality == SeedModality.DRAWING.value:
                    logger.warning("No custom drawn boundary; computing boundary mask from the seed")
                mask = self.boundary.generate(pixels, boundary_overlay)
                enable, falloff = True, self.boundary.falloff
            else:
                mask, enable, falloff = None, False, 0.0

            logger.info(
                f"Seed synthesized: {ctx.width}×{ctx.height}, grayscale={self.postprocessor.grayscale}, "
                f"blur={strategy}, boundary={enable}"
            )
            return SynthesisResult(
                field=field_,
                boundary_mask=mask,
                enable_boundary=enable,
                falloff=falloff,
                modality=seed.modality,
                grayscale=self.postprocessor.grayscale,
                blur_strategy=strategy,
                raster=pixels,
            )
        finally:
            pop_context(['modality'])

    def submit(
        self,
        spec: SeedInput,
        boundary_overlay: Optional[np.ndarray] = None
    ) -> asyncio.Task:
        """Schedule a synthesis, cancelling the one still pending."""
        previous = self._pending
        if previous is not None and not previous.done():
            logger.debug("Superseding pending synthesis")
            self._superseded.add(previous)
            previous.cancel()
        task = asyncio.ensure_future(self.synthesize(spec, boundary_overlay))
        self._pending = task
        return task

    def was_superseded(self, task: asyncio.Task) -> bool:
        return task in self._superseded

    def forget(self, task: asyncio.Task) -> None:
        self._superseded.discard(task)
        if self._pending is task:
            self._pending = None

    async def cancel_pending(self) -> None:
        task = self._pending
        if task is not None and not task.done():
            self._superseded.add(task)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            finally:
                self.forget(task)


class SeedPipeline:
    """Synthesize a seed and upload it into the solver state."""

    def __init__(
        self,
        synthesizer: SeedSynthesizer,
        bootstrapper: Optional[RenderTargetBootstrapper] = None
    ):
        self.synthesizer = synthesizer
        self.bootstrapper = bootstrapper or RenderTargetBootstrapper()

    async def reseed(
        self,
        spec: SeedInput,
        state: SolverState,
        boundary_overlay: Optional[np.ndarray] = None
    ) -> SeedOutcome:
        """Synthesize and apply; recoverable failures leave ``state`` untouched."""
        task = self.synthesizer.submit(spec, boundary_overlay)
        try:
            result = await task
        except asyncio.CancelledError:
            if self.synthesizer.was_superseded(task):
                logger.info("Reseed superseded by a newer request")
                return SeedOutcome(superseded=True)
            raise
        except SeedSynthesisError as e:
            logger.error(f"Seed synthesis failed: {e}")
            return SeedOutcome(error=e)
        finally:
            self.synthesizer.forget(task)

        self.bootstrapper.apply(result, state)
        return SeedOutcome(result=result)

    def disable_boundary(self, state: SolverState) -> None:
        self.bootstrapper.disable_boundary(state)
