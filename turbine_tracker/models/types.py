"""
Standard type definitions for database models.

Provides consistent column types for on-chain amounts.
"""

from sqlalchemy import String

from turbine_tracker.config.constants import UINT256_MAX_DIGITS

# Raw token amount as a base-10 string
# Wide enough for any uint256 (78 digits), so no precision is lost
# Never stored as float or DECIMAL: aggregation parses back to int
RawAmountType = String(UINT256_MAX_DIGITS)

# Checksummed 0x-prefixed address
AddressType = String(42)

# 0x-prefixed 32-byte hash
HashType = String(66)
