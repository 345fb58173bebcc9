"""Copy editor backend: AI response segmentation, prompt assembly and gateway proxying."""

__version__ = "0.3.0"
