"""buildwright: build wrapper around an external generator and executor.

Turns a handful of CLI invocations into calls to gn and ninja, and keeps
the cached downloads those builds need in sync:
  - goma compilation-accelerator client, pinned per platform by SHA-256
  - Xcode SDK, resolved from the checkout's CI config, pinned by MD5
  - gn regeneration only when the desired arguments changed
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
