# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.__init__",
#   "purpose": "Top-level package for the online module registry client.",
#   "sections": []
# }
# === /NAVMAP ===

"""
ModuleRepo: client-side synchronisation with an online plugin module registry.

Subpackages:
- :mod:`ModuleRepo.RepoSync` keeps an in-memory catalog of published modules,
  a per-module latest-release index, and notifies listeners when either changes.
- :mod:`ModuleRepo.concurrency` hosts the executor factory shared by the
  background workers.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
