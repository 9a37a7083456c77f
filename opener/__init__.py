"""
Opener record store
Copyright (c) 2026

SECURITY NOTE:
The store keeps shortcuts (URLs, paths, data snippets, REST descriptors) in a
single encrypted file. In local mode the file is bound to the current user
account on this machine. In portable mode it can be opened anywhere with the
same password. The plaintext password fallback file is weaker than the system
keyring and exists only for platforms without one.
"""

__version__ = "1.0.0"
