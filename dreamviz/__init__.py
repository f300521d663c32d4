"""Dream Visualizer: spoken dream narration to generated video."""

__version__ = "0.3.0"
