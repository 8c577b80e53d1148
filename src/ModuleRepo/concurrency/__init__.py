# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.concurrency.__init__",
#   "purpose": "Concurrency helpers shared across ModuleRepo components.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared across ModuleRepo components.

Currently exposes :func:`create_executor`, which hands the sync engine a
thread pool whose workers double as the completion threads for network
callbacks.
"""

from .executors import create_executor

__all__ = ["create_executor"]
