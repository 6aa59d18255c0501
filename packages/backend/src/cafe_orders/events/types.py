"""Real-time event type constants.

These names are the wire contract with the ordering and kitchen UIs,
which listen for them verbatim.
"""

NEW_ORDER = "newOrder"
ORDER_UPDATE = "orderUpdate"
ORDER_DELETED = "orderDeleted"
