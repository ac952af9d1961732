"""Headless solver state and seed upload into its render targets."""

from .bootstrap import HeadlessDisplay, RenderTargetBootstrapper, SolverState

__all__ = [
    'HeadlessDisplay',
    'RenderTargetBootstrapper',
    'SolverState',
]
