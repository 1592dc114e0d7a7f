"""Provisioning steps that must finish before a container is created.

- **binary**: Terraform binary download + on-disk cache
- **archive**: Zip extraction with path-traversal checks
- **image**: Base image presence check + pull with progress view
"""

from tfbox.provision.binary import BinaryProvisioner
from tfbox.provision.image import ensure_image

__all__ = ["BinaryProvisioner", "ensure_image"]
