"""pdfturn - Per-page PDF rotation planning with rendered previews."""

import logging

__version__ = "0.1.0"
__all__ = ["__version__"]

# Prevent "No handler found" warnings when used as a library
logging.getLogger("pdfturn").addHandler(logging.NullHandler())
