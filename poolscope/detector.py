"""Classify raw pool-account bytes into a protocol variant."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from .layouts import DETECTION_RULES, REGISTRY, SIZE_DRIFT_RULE, DetectionRule, ProtocolLayout, is_zeroed, read_field
from .models import Confidence, DetectionResult, PoolVariant

DISCRIMINATOR_LENGTH = 8


def passes_structural_validation(layout: ProtocolLayout, data: bytes) -> bool:
    """Reject uninitialised mints/vaults and implausible fee rates before decoding."""
    if len(data) < layout.min_length:
        return False
    for name in layout.validated_pubkeys:
        if is_zeroed(layout.get_field(name), data):
            return False
    if layout.fee_field:
        fee = read_field(layout.get_field(layout.fee_field), data)
        low, high = layout.fee_bounds
        if fee is None or not low <= fee <= high:
            return False
    return True


def _match_discriminator(rule: DetectionRule, layout: ProtocolLayout, data: bytes) -> bool:
    return layout.discriminator is not None and bytes(data[:DISCRIMINATOR_LENGTH]) == layout.discriminator


def _match_exact_size(rule: DetectionRule, layout: ProtocolLayout, data: bytes) -> bool:
    return len(data) == layout.exact_size


def _match_exact_size_and_discriminator(rule: DetectionRule, layout: ProtocolLayout, data: bytes) -> bool:
    return _match_exact_size(rule, layout, data) and _match_discriminator(rule, layout, data)


def _match_size_range_validated(rule: DetectionRule, layout: ProtocolLayout, data: bytes) -> bool:
    if layout.size_range is None:
        return False
    low, high = layout.size_range
    return low <= len(data) <= high and passes_structural_validation(layout, data)


def _match_size_band(rule: DetectionRule, layout: ProtocolLayout, data: bytes) -> bool:
    if rule.size_band is None:
        return False
    low, high = rule.size_band
    return low <= len(data) <= high


MATCHERS: Dict[str, Callable[[DetectionRule, ProtocolLayout, bytes], bool]] = {
    "discriminator": _match_discriminator,
    "exact_size": _match_exact_size,
    "exact_size_and_discriminator": _match_exact_size_and_discriminator,
    "size_range_validated": _match_size_range_validated,
    "size_band": _match_size_band,
}


def detect(data: bytes, address: Optional[str] = None, allow_size_drift: bool = True) -> DetectionResult:
    """Run the ordered rule set against ``data``; never raises on malformed input."""
    data = bytes(data or b"")
    size = len(data)
    discriminator = data[:DISCRIMINATOR_LENGTH].hex() if size >= DISCRIMINATOR_LENGTH else None

    for rule in DETECTION_RULES:
        if rule.name == SIZE_DRIFT_RULE and not allow_size_drift:
            continue
        layout = REGISTRY[rule.variant]
        if MATCHERS[rule.kind](rule, layout, data):
            logging.debug("Detected %s for %s via %s", rule.variant.value, address or "<buffer>", rule.name)
            return DetectionResult(
                variant=rule.variant,
                declared_size=size,
                discriminator=discriminator,
                confidence=rule.confidence,
                reason=rule.reason,
                rule=rule.name,
            )

    logging.debug("No protocol matched %s (%d bytes)", address or "<buffer>", size)
    return DetectionResult(
        variant=PoolVariant.UNKNOWN,
        declared_size=size,
        discriminator=discriminator,
        confidence=Confidence.LOW,
        reason=f"Unrecognized account structure (size: {size} bytes)",
    )
