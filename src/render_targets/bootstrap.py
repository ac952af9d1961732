"""Upload a synthesized seed into the solver's ping-pong render targets.

SolverState models the GPU side of the reaction-diffusion solver without a
window: two float32 render targets (torch tensors, texture order) plus the
uniform dictionaries of the simulation, display and passthrough programs.

Bootstrap sequence:
    1. passthrough program shows the field texture
    2. render into target 0 and target 1
    3. boundary: mask texture → simulation ``boundaryMask`` and display
       ``boundaryMaskDisplay``, ``enableBoundary`` = True, falloff set;
       or ``enableBoundary`` = False when no mask is enabled
    4. display program reads target 0 (``textureToDisplay`` and
       ``previousIterationTexture``) and one visible frame is rendered
    5. iteration counter reset to 0
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import torch

from src.utils import torch_utils

if TYPE_CHECKING:
    from src.seed_synthesis.pipeline import SynthesisResult

logger = logging.getLogger(__name__)

PASSTHROUGH = 'passthrough'
DISPLAY = 'display'


@dataclass
class SolverState:
    width: int
    height: int
    device: torch.device
    render_targets: List[torch.Tensor]
    simulation_uniforms: Dict[str, Any] = field(default_factory=dict)
    display_uniforms: Dict[str, Any] = field(default_factory=dict)
    passthrough_uniforms: Dict[str, Any] = field(default_factory=dict)
    active_program: str = DISPLAY
    iterations: int = 0

    @classmethod
    def create(cls, width: int, height: int, device: str = 'cpu') -> 'SolverState':
        dev = torch.device(device)
        targets = [torch.zeros((height, width, 4), dtype=torch.float32, device=dev) for _ in range(2)]
        return cls(
            width=width,
            height=height,
            device=dev,
            render_targets=targets,
            simulation_uniforms={
                'enableBoundary': False,
                'boundaryFalloff': 0.0,
                'boundaryMask': None,
            },
            display_uniforms={
                'textureToDisplay': None,
                'previousIterationTexture': None,
                'boundaryMaskDisplay': None,
            },
            passthrough_uniforms={'textureToDisplay': None},
        )

    def program_uniforms(self, program: Optional[str] = None) -> Dict[str, Any]:
        program = program or self.active_program
        if program == PASSTHROUGH:
            return self.passthrough_uniforms
        if program == DISPLAY:
            return self.display_uniforms
        raise ValueError(f"Unknown program: {program}")


class HeadlessDisplay:
    """Render the active program's texture into a target or the screen.

    Rendering into a target copies the program's ``textureToDisplay``;
    rendering to the screen (target None) records the frame in ``frames``.
    """

    def __init__(self, keep_frames: int = 1):
        self.keep_frames = keep_frames
        self.frames: List[torch.Tensor] = []

    def render(self, state: SolverState, target: Optional[int] = None) -> None:
        texture = state.program_uniforms().get('textureToDisplay')
        if texture is None:
            raise RuntimeError(f"Program '{state.active_program}' has no textureToDisplay bound")
        if target is None:
            self.frames.append(texture.detach().clone())
            if len(self.frames) > self.keep_frames:
                self.frames = self.frames[-self.keep_frames:]
            return
        state.render_targets[target].copy_(texture)

    @property
    def last_frame(self) -> Optional[torch.Tensor]:
        return self.frames[-1] if self.frames else None


class RenderTargetBootstrapper:
    """Apply a SynthesisResult to a SolverState."""

    def __init__(self, display: Optional[HeadlessDisplay] = None):
        self.display = display or HeadlessDisplay()

    def apply(self, result: 'SynthesisResult', state: SolverState) -> None:
        field_ = result.field
        if (field_.width, field_.height) != (state.width, state.height):
            raise ValueError(
                f"Field {field_.width}×{field_.height} does not match render targets "
                f"{state.width}×{state.height}"
            )

        state.iterations = 0

        texture = torch_utils.to_tensor_hwc(field_.as_texture(), state.device)
        state.passthrough_uniforms['textureToDisplay'] = texture
        state.active_program = PASSTHROUGH
        for i in range(len(state.render_targets)):
            self.display.render(state, target=i)

        if result.enable_boundary and result.boundary_mask is not None:
            self.apply_boundary(result.boundary_mask, result.falloff, state)
        else:
            self.disable_boundary(state)

        state.display_uniforms['textureToDisplay'] = state.render_targets[0]
        state.display_uniforms['previousIterationTexture'] = state.render_targets[0]
        state.active_program = DISPLAY
        self.display.render(state, target=None)
        logger.debug(f"Render targets seeded ({state.width}×{state.height})")

    def apply_boundary(self, mask, falloff: float, state: SolverState) -> None:
        if (mask.width, mask.height) != (state.width, state.height):
            raise ValueError(
                f"Boundary mask {mask.width}×{mask.height} does not match render targets "
                f"{state.width}×{state.height}"
            )
        texture = torch_utils.to_tensor_hwc(mask.texture(), state.device)
        state.simulation_uniforms['boundaryMask'] = texture
        state.simulation_uniforms['enableBoundary'] = True
        state.simulation_uniforms['boundaryFalloff'] = float(falloff)
        state.display_uniforms['boundaryMaskDisplay'] = texture

    def disable_boundary(self, state: SolverState) -> None:
        state.simulation_uniforms['enableBoundary'] = False
