"""
repostat - Status overview for a curated set of git repositories.

repostat inspects many local repositories in parallel and prints one
aligned row per repository: pending changes, branch, upstream state
and last commit.

Quick Start:
    from repostat import GitClient, Scheduler, RepositoryRef, render

    refs = [RepositoryRef("api", "/src/api"), RepositoryRef("web", "/src/web")]
    result_set = Scheduler(GitClient().inspect_ref).run(refs)
    print(render(result_set))

Domain Objects:
    RepositoryRef - Tracked repository (name and path)
    RepositoryStatus - Snapshot produced by one inspection
    Success / Failure - Outcome of one inspection
    ResultSet - Ordered outcomes for a batch

Services:
    Scheduler - Parallel inspection with failure isolation
    ResultCollector - Reassembles outcomes into input order
"""

__version__ = "0.3.0"

# Domain objects
from .domain import (
    RepositoryRef,
    RepositoryStatus,
    Distance,
    ErrorKind,
    InspectionError,
    Success,
    Failure,
    ResultEntry,
    ResultSet,
)

# Services
from .services import Scheduler, ResultCollector, default_concurrency

# Infrastructure
from .infra import GitClient

# Rendering and progress
from .render import render, render_summary, compute_widths
from .progress import ProgressReporter

# Configuration
from .config import load_config, save_config, get_repository_refs

__all__ = [
    # Version
    "__version__",
    # Domain objects
    "RepositoryRef",
    "RepositoryStatus",
    "Distance",
    "ErrorKind",
    "InspectionError",
    "Success",
    "Failure",
    "ResultEntry",
    "ResultSet",
    # Services
    "Scheduler",
    "ResultCollector",
    "default_concurrency",
    # Infrastructure
    "GitClient",
    # Rendering and progress
    "render",
    "render_summary",
    "compute_widths",
    "ProgressReporter",
    # Configuration
    "load_config",
    "save_config",
    "get_repository_refs",
]
