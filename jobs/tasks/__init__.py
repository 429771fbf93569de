"""Background task implementations."""

from jobs.tasks.chain_info_refresh import (
    refresh_chain_info,
    run_chain_info_refresh,
)

__all__ = ["refresh_chain_info", "run_chain_info_refresh"]
