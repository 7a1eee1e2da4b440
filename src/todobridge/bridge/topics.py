"""Topic naming for the command bridge.

Learn: Everything hangs off one base prefix (default "blazor-net-app"):

    <prefix>/#                          subscription (Redis glob: <prefix>/*)
    <prefix>/command/<name>             inbound commands
    <prefix>/response/<correlationId>   correlated responses
    <prefix>/response                   uncorrelated responses
    <prefix>/todo/<action>              change events

The prefix is the first path segment of the configured topic pattern,
with wildcard markers stripped.
"""

from typing import Optional

import structlog

from todobridge.config import DEFAULT_TOPIC_PREFIX

logger = structlog.get_logger()

_WILDCARDS = "#+*"


def derive_prefix(topic_pattern: str) -> str:
    """Base prefix from a pattern like "blazor-net-app/#".

    An unusable pattern ("#", "/x/#", "") falls back to the default
    prefix with a warning. Degraded config, not a startup failure.
    """
    first = (topic_pattern or "").split("/")[0].strip().rstrip(_WILDCARDS).strip()
    if not first:
        logger.warning(
            "bridge.invalid_topic_prefix",
            topic=topic_pattern,
            fallback=DEFAULT_TOPIC_PREFIX,
        )
        return DEFAULT_TOPIC_PREFIX
    return first


def subscription_pattern(prefix: str) -> str:
    return f"{prefix}/*"


def command_topic(prefix: str, name: str) -> str:
    return f"{prefix}/command/{name}"


def command_name(prefix: str, topic: str) -> Optional[str]:
    """Lower-cased command name for a command topic, None for any other topic."""
    marker = f"{prefix}/command/"
    if not topic.startswith(marker):
        return None
    return topic[len(marker):].lower()


def response_topic(prefix: str, correlation_id: Optional[str] = None) -> str:
    if correlation_id:
        return f"{prefix}/response/{correlation_id}"
    return f"{prefix}/response"


def event_topic(prefix: str, action: str) -> str:
    return f"{prefix}/todo/{action}"
