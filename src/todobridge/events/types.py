"""Change event actions.

Learn: These strings are part of the wire protocol: they appear as the
"action" field of every WebSocket frame and as the last segment of the
pub/sub event topic (<prefix>/todo/<action>).
"""

CREATED = "created"
UPDATED = "updated"
UPDATED_PARTIAL = "updatedpartial"
DELETED = "deleted"
