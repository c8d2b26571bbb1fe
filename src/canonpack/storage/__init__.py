"""Storage backends: package caches, project folders and the files they persist.

Submodules are imported directly (``canonpack.storage.disk_cache`` etc.); the
archive codec depends on ``storage.parser`` so this package stays import-free.
"""
