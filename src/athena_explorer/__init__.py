"""Athena query execution and catalog browsing for interactive SQL tools."""
from athena_explorer.driver import AthenaDriver

__all__ = ["AthenaDriver"]
__version__ = "0.1.0"
