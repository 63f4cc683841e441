"""
Better Brew - Parallel Homebrew package operations.

Core Modules:
- Gateway and Limiter: brew invocation and bounded concurrency
- Work Items: package lists, batching, outdated/installed queries
- Engine: parallel batch execution with aggregated results
- Orchestrator: update, upgrade, install and reinstall commands
"""

__version__ = "0.1.0"

VERSION = __version__

from .errors import (
    BetterBrewError,
    AvailabilityError,
    LaunchError,
    QueryError,
    ParseError,
    UsageError,
    CommandError,
    BatchFailedError,
)
from .config import Config, Preferences, load_config, load_config_file, validate_config
from .gateway import CommandSpec, CommandOutcome, CommandGateway
from .limiter import ConcurrencyLimiter
from .work_items import (
    WorkItem,
    partition_batches,
    single_items,
    unique_names,
    parse_outdated,
    parse_installed,
    query_outdated,
    query_installed,
)
from .progress import ProgressSink, NullProgress, ProgressTracker, RichProgress
from .engine import (
    Verb,
    FETCH,
    INSTALL,
    REINSTALL,
    ItemResult,
    RunResult,
    reduce_results,
    execute_items,
)
from .orchestrator import check_available, update, upgrade, install, reinstall
from .logging_config import setup_logging, get_logger

__all__ = [
    "__version__",
    "VERSION",
    # Errors
    "BetterBrewError",
    "AvailabilityError",
    "LaunchError",
    "QueryError",
    "ParseError",
    "UsageError",
    "CommandError",
    "BatchFailedError",
    # Configuration
    "Config",
    "Preferences",
    "load_config",
    "load_config_file",
    "validate_config",
    # Gateway and limiter
    "CommandSpec",
    "CommandOutcome",
    "CommandGateway",
    "ConcurrencyLimiter",
    # Work items
    "WorkItem",
    "partition_batches",
    "single_items",
    "unique_names",
    "parse_outdated",
    "parse_installed",
    "query_outdated",
    "query_installed",
    # Progress
    "ProgressSink",
    "NullProgress",
    "ProgressTracker",
    "RichProgress",
    # Engine
    "Verb",
    "FETCH",
    "INSTALL",
    "REINSTALL",
    "ItemResult",
    "RunResult",
    "reduce_results",
    "execute_items",
    # Orchestrator
    "check_available",
    "update",
    "upgrade",
    "install",
    "reinstall",
    # Logging
    "setup_logging",
    "get_logger",
]
