"""actions-dependency-submission: GitHub Actions dependency inventory and fork resolution."""

__version__ = "1.0.0"
