"""Reaction-diffusion seed synthesis.

Turns a seed specification (circle, square, text, image, drawing, empty)
into the initial 4-channel concentration field of a reaction-diffusion
solver, and optionally derives a [0, 1] boundary mask constraining where the
pattern may grow.

Architecture layers (strict one-way dependency):
    scripts/ → src/seed_synthesis/ → src/{boundary,render_targets}/ → src/utils/

Key invariants:
    - Raster, field and mask dimensions always match the canvas
    - Fields are stored in texture order (vertically flipped)
    - YAML-only configs, validated with pydantic
    - A user-authored boundary overlay always wins over the computed mask
"""

__version__ = "0.1.0"
