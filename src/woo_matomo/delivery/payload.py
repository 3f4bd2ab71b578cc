"""
Module: delivery/payload.py
Description: Matomo Tracking HTTP API parameter encoding.

Turns a TrackingEvent into the flat form field map posted to
matomo.php. Protocol fields come first, then the event descriptors,
ambient context and token; order fields are namespaced under c_ so
they cannot collide with protocol parameters.
"""

import json
import random
from typing import Any, Dict, Optional

from woo_matomo.models.delivery import DeliveryConfig, TrackingContext
from woo_matomo.models.event import TrackingEvent

CUSTOM_FIELD_PREFIX = "c_"
RAND_MAX = 2147483647


def _encode_value(value: Any) -> str:
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def build_tracking_params(
    config: DeliveryConfig,
    event: TrackingEvent,
    context: Optional[TrackingContext] = None,
    rand: Optional[int] = None
) -> Dict[str, str]:
    """
    Build the form-encoded parameter map for one tracking request.

    Args:
        config: Collector configuration (site id and token)
        event: Event to encode
        context: Page URL, referrer and acting user
        rand: Cache-busting nonce; random when omitted

    Returns:
        Flat mapping of Matomo parameter names to string values
    """
    context = context or TrackingContext()
    if rand is None:
        rand = random.randint(0, RAND_MAX)

    params = {
        "idsite": str(config.site_id),
        "rec": "1",
        "apiv": "1",
        "e_c": event.category,
        "e_a": event.action,
        "e_n": event.label,
        "e_v": event.value,
        "url": context.url,
        "uid": str(context.user_id),
        "rand": str(rand),
        "token_auth": config.auth_token,
    }
    if context.referrer:
        params["urlref"] = context.referrer

    for key, value in event.custom_dimensions().items():
        params[f"{CUSTOM_FIELD_PREFIX}{key}"] = _encode_value(value)

    return params
