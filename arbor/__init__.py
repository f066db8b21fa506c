"""
arbor: command trees with recursive dispatch and synthesized help.
"""
__title__ = 'arbor'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from collections import namedtuple as _namedtuple

from . import commands, faults, flags, help
from .commands import *
from .faults import *
from .flags import *
from .help import *

VersionInfo = _namedtuple("VersionInfo", "major minor micro releaselevel serial metadata")
version_info = VersionInfo(*map(int, __version__.split(".")), "final", 0, "")

__all__ = (
    "__title__",
    "__license__",
    "__version__",
    "version_info",
    *commands.__all__,
    *faults.__all__,
    *flags.__all__,
    *help.__all__,
)
