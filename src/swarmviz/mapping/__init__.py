"""Row and wire mappers.

``rows`` turns raw store rows into internal records; ``wire`` turns internal
records into the client-facing protocol models. Both are pure.
"""

from swarmviz.mapping.rows import (
    map_event,
    map_merge_entry,
    map_message,
    map_metrics_session,
    map_session,
    map_token_snapshot,
    parse_file_list,
)
from swarmviz.mapping.wire import (
    compute_metrics,
    model_shorthand,
    to_agent,
    to_agent_message,
    to_epoch_ms,
    to_merge_entry,
    to_token_usage,
    to_tool_event,
)

__all__ = [
    # Rows
    "map_session",
    "map_message",
    "map_merge_entry",
    "map_event",
    "map_metrics_session",
    "map_token_snapshot",
    "parse_file_list",
    # Wire
    "to_agent",
    "to_agent_message",
    "to_merge_entry",
    "to_tool_event",
    "to_token_usage",
    "to_epoch_ms",
    "model_shorthand",
    "compute_metrics",
]
