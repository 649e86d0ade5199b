"""
Bundle Gate Package.

Gate de build incrémental : ne relance la toolchain externe que si le
fingerprint des entrées a changé depuis le dernier build réussi.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bundle-gate")
except PackageNotFoundError:
    # Exécution depuis les sources sans installation
    from bundle_gate.__version__ import __version__

__all__ = ["__version__"]
