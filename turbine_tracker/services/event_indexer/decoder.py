"""
Event Decoder.

Turns raw ``eth_getLogs`` entries of the tracked event into LogEvent
values. Layout of the event:

- topic[0]: event signature
- topic[1]: recipient, left-padded to 32 bytes
- topic[2]: silence amount, uint256
- topic[3]: USDT amount, uint256
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from eth_utils import to_checksum_address
from web3 import Web3

from turbine_tracker.services.event_indexer.timestamp_estimator import (
    TimestampEstimator,
)
from turbine_tracker.services.event_indexer.types import LogEvent
from turbine_tracker.utils.exceptions import DecodeError

_WORD_RE = re.compile(r"[0-9a-f]{64}")


def _to_hex(value: Any, field: str) -> str:
    """Normalize bytes / hex string to a lowercase 0x-prefixed string."""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(bytes(value))
    if isinstance(value, str):
        text = value.lower()
        return text if text.startswith("0x") else f"0x{text}"
    raise DecodeError(f"{field}: unexpected type {type(value).__name__}")


def _to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise DecodeError(f"{field}: unexpected boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith("0x") else int(value)
        except ValueError as e:
            raise DecodeError(f"{field}: invalid integer {value!r}") from e
    raise DecodeError(f"{field}: unexpected type {type(value).__name__}")


def _require(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    raise DecodeError(f"missing field {keys[0]}")


def _topic_word(topics: list[Any], index: int, name: str) -> str:
    """32-byte topic as 64 lowercase hex chars (no prefix)."""
    if len(topics) <= index or topics[index] is None:
        raise DecodeError(f"missing topic[{index}] ({name})")
    word = _to_hex(topics[index], f"topic[{index}]")[2:]
    if not _WORD_RE.fullmatch(word):
        raise DecodeError(f"malformed topic[{index}] ({name}): 0x{word}")
    return word


def decode_log(raw: Mapping[str, Any], estimator: TimestampEstimator) -> LogEvent:
    """
    Decode one raw log.

    Args:
        raw: Log entry as returned by the node (web3 AttributeDict or dict)
        estimator: Source of the event's estimated timestamp

    Returns:
        Decoded event

    Raises:
        DecodeError: A required topic or field is missing or malformed
    """
    topics = list(_require(raw, "topics"))

    recipient_word = _topic_word(topics, 1, "recipient")
    silence_word = _topic_word(topics, 2, "silence amount")
    usdt_word = _topic_word(topics, 3, "usdt amount")

    block_number = _to_int(_require(raw, "blockNumber"), "blockNumber")
    log_index = _to_int(_require(raw, "logIndex", "index"), "logIndex")
    tx_hash = _to_hex(_require(raw, "transactionHash"), "transactionHash")
    if not _WORD_RE.fullmatch(tx_hash[2:]):
        raise DecodeError(f"malformed transactionHash: {tx_hash}")

    # Address is the low 20 bytes of the padded topic
    recipient = to_checksum_address("0x" + recipient_word[24:])

    return LogEvent(
        unique_id=f"{tx_hash}-{log_index}",
        block_number=block_number,
        transaction_hash=tx_hash,
        log_index=log_index,
        recipient=recipient,
        silence_amount=str(int(silence_word, 16)),
        usdt_amount=str(int(usdt_word, 16)),
        timestamp=estimator.estimate(block_number),
    )


def decode_logs(
    raws: Iterable[Mapping[str, Any]],
    estimator: TimestampEstimator,
) -> list[LogEvent]:
    """Decode a batch; the first malformed entry fails the whole batch."""
    return [decode_log(raw, estimator) for raw in raws]
