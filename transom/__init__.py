__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'transom'
__author__ = 'Eiko Reishin (影皇嶺臣)'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .behaviors import *
from .commands import *
from .config import *
from .dispatch import *
from .faults import *
from .host import *
from .instances import *
from .layout import *
from .objects import *
from .display import *
from .stack import *
from .store import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the behaviors
__all__ += behaviors.__all__  # type: ignore[attr-defined]
# Load the exposed API of the built-in commands
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the configuration
__all__ += config.__all__  # type: ignore[attr-defined]
# Load the exposed API of the dispatcher
__all__ += dispatch.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the hosts
__all__ += host.__all__  # type: ignore[attr-defined]
# Load the exposed API of the instances
__all__ += instances.__all__  # type: ignore[attr-defined]
# Load the exposed API of the layouts
__all__ += layout.__all__  # type: ignore[attr-defined]
# Load the exposed API of the objects
__all__ += objects.__all__  # type: ignore[attr-defined]
# Load the exposed API of the display
__all__ += display.__all__  # type: ignore[attr-defined]
# Load the exposed API of the stack
__all__ += stack.__all__  # type: ignore[attr-defined]
# Load the exposed API of the stores
__all__ += store.__all__  # type: ignore[attr-defined]
