"""
Demo fulfiller invoked after a payment settles
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50


class DemoFulfiller:
    """Echoes a short preview of the intent input"""

    def fulfill_request(self, intent_id: str, input: Any) -> str:
        if isinstance(input, str):
            text = input
        else:
            text = json.dumps(input if input is not None else {}, separators=(",", ":"))
        logger.info("Fulfilling intent %s", intent_id)
        return f"Fulfilled intent {intent_id}: {text[:PREVIEW_LENGTH]}..."
