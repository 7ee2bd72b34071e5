"""
ipfsvault — encrypted file backup to a content-addressed store.

Every file is encrypted before it leaves the machine. A local manifest
remembers what was uploaded and where, so unchanged files never travel twice.
"""

import os

__version__ = "0.1.0"
__author__ = "ipfsvault contributors"

VAULT_HOME = os.environ.get("IPFSVAULT_HOME", "~/.ipfsvault")
