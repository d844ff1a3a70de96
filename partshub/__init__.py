"""partshub: resolve GitHub-hosted parts registries and the libraries inside them."""

import logging

__version__ = "0.3.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
