"""rundev - reactive local development environment for Node.js projects.

Finds the nearest ``package.json``, provisions the Node.js runtime and
package manager it asks for, installs dependencies and keeps the dev server
running while the manifest and lockfile change on disk.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
