"""
Utils package for tuplegen.

This module provides the shared infrastructure: exceptions, constants,
naming and text helpers, configuration, logging and the expansion cache.
"""

# Core utilities
from .exceptions import (
    TupleGenError,
    SourceSyntaxError,
    ConfigError,
    UnsupportedConstructError,
    MalformedDirectiveError,
    UnknownPlaceholderError,
    EmptyBodyOnZeroArityError,
    ConfigurationFileError,
    SourceExpansionError,
)
from .constants import *
from .naming import *
from .string_utils import *

# Configuration and system utilities
from .config import (
    TupleGenConfig,
    ExpansionConfig,
    FormatConfig,
    CacheConfig,
    LoggingConfig,
    get_config,
    set_config,
    load_config,
)

from .logging import ExpansionLogger, get_logger, setup_logging
from .caching import CachedSite, ExpansionCache, generate_cache_key
