"""Cloudbot Classifier Coordinator.

Manages the lifecycle of remotely-trained natural language classifiers that
map search phrases to stored objects:
- Selecting the current classifier generation for live classification
- Deciding when a new generation should be trained
- Cleaning up superseded generations
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
