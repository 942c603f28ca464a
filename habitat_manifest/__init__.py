"""Habitat manifest renderer.

Renders the Kubernetes custom resource for a Habitat-packaged workload
(image, replica count, environment, persistent storage, service binds
and user config secret) from a small block template and a typed
parameter Context.
"""

try:
    from importlib.metadata import version

    __version__ = version("habitat-manifest")
except Exception:
    __version__ = "0.0.0.dev0"

__all__ = ["__version__"]
