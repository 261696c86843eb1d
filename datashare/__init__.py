"""
datashare — indexed key/value chaincode for a shared ledger.

Four operations over a host-supplied state store: `insert` (append to a
key's history), `update` (overwrite), `key_search` (read by key) and
`value_search` (reverse lookup through the KeyIndex). `datashare.runtime`
runs invocations locally against a memory or SQLite store.
"""

from .version import __version__

__all__ = ["__version__"]
