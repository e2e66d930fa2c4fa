"""
Engie Version Management - Centralized version for all components

Single source of truth for the Engie version. The CLI banner, the
package ``__version__`` and the analysis User-Agent all import from here.

Author: Engie contributors | 2025-05-14
"""

# =============================================================================
# Engie Version - Single Source of Truth
# =============================================================================

__version__ = "0.4.0"

VERSION_MAJOR = 0
VERSION_MINOR = 4
VERSION_PATCH = 0
VERSION_SUFFIX = ""  # e.g., "alpha", "beta", "rc1", ""

BUILD_DATE = "2026-10-18"

VERSION_FULL = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"
if VERSION_SUFFIX:
    VERSION_FULL = f"{VERSION_FULL}-{VERSION_SUFFIX}"


def get_version() -> str:
    """Get the current Engie version string."""
    return __version__


def get_version_info() -> dict:
    """Get detailed version information."""
    return {
        "version": __version__,
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "suffix": VERSION_SUFFIX,
        "full": VERSION_FULL,
        "build_date": BUILD_DATE,
    }


def get_short_banner() -> str:
    """Get a compact version banner."""
    return f"Engie v{__version__} | writing assistant core | {BUILD_DATE}"


def user_agent() -> str:
    """User-Agent header sent to analysis services."""
    return f"engie-core/{__version__}"
